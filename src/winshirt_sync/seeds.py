"""Built-in seed data served when neither the remote store nor the cache
has anything to show.

Every function returns a fresh list, so callers may mutate the result.
Records are camelCase, like everything else in the cache.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone


def _days_from(now: datetime, days: int) -> str:
    return (now + timedelta(days=days)).isoformat()


def seed_visual_categories() -> list[dict]:
    return [
        {
            "id": 1,
            "name": "Sports",
            "description": "Visuels sur le thème du sport",
            "slug": "sports",
        },
        {
            "id": 2,
            "name": "Musique",
            "description": "Visuels sur le thème de la musique",
            "slug": "musique",
        },
        {
            "id": 3,
            "name": "Animaux",
            "description": "Visuels d'animaux",
            "slug": "animaux",
        },
        {
            "id": 4,
            "name": "Nature",
            "description": "Visuels de paysages et de nature",
            "slug": "nature",
        },
    ]


def seed_visuals() -> list[dict]:
    return [
        {
            "id": 1,
            "name": "Logo Football",
            "description": "Ballon de football stylisé",
            "image": "/assets/visuals/football.png",
            "categoryId": 1,
            "categoryName": "Sports",
            "tags": ["football", "sport"],
        },
        {
            "id": 2,
            "name": "Note de musique",
            "description": "Note de musique élégante",
            "image": "/assets/visuals/music.png",
            "categoryId": 2,
            "categoryName": "Musique",
            "tags": ["musique"],
        },
        {
            "id": 3,
            "name": "Chien",
            "description": "Silhouette de chien",
            "image": "/assets/visuals/dog.png",
            "categoryId": 3,
            "categoryName": "Animaux",
            "tags": ["animaux", "chien"],
        },
    ]


def seed_lotteries(now: datetime | None = None) -> list[dict]:
    """Sample lotteries whose end and draw dates are relative to *now*."""
    now = now or datetime.now(timezone.utc)
    return [
        {
            "id": 1,
            "title": "Grand Tirage Été",
            "description": "Gagnez des produits exclusifs avec ce tirage au sort estival !",
            "value": 250,
            "image": "https://placehold.co/600x400/555/fff?text=Lottery+1",
            "targetParticipants": 50,
            "currentParticipants": 12,
            "status": "active",
            "endDate": _days_from(now, 30),
            "drawDate": _days_from(now, 35),
            "featured": True,
            "linkedProducts": [1, 2],
        },
        {
            "id": 2,
            "title": "Tirage Spécial",
            "description": "Une chance unique de gagner des articles rares et exclusifs !",
            "value": 500,
            "image": "https://placehold.co/600x400/444/fff?text=Lottery+2",
            "targetParticipants": 100,
            "currentParticipants": 35,
            "status": "active",
            "endDate": _days_from(now, 45),
            "drawDate": _days_from(now, 50),
            "featured": True,
            "linkedProducts": [1, 3],
        },
        {
            "id": 3,
            "title": "Tirage Hiver",
            "description": "Participez pour tenter de gagner notre collection hiver !",
            "value": 350,
            "image": "https://placehold.co/600x400/333/fff?text=Lottery+3",
            "targetParticipants": 75,
            "currentParticipants": 20,
            "status": "upcoming",
            "endDate": _days_from(now, 60),
            "drawDate": _days_from(now, 65),
            "featured": False,
            "linkedProducts": [2, 4],
        },
    ]


def seed_products() -> list[dict]:
    return [
        {
            "id": 1,
            "name": "T-Shirt 3D",
            "description": "Un t-shirt moderne avec un design en 3D unique.",
            "price": 29.99,
            "image": "https://placehold.co/600x400/555/fff?text=T-Shirt+3D",
            "sizes": ["S", "M", "L", "XL"],
            "colors": ["Noir", "Blanc", "Rouge"],
            "type": "standard",
            "productType": "T-Shirt",
            "allowCustomization": True,
            "tickets": 3,
            "linkedLotteries": [1, 2],
        },
        {
            "id": 2,
            "name": "Sweatshirt Premium",
            "description": "Un sweatshirt confortable et chaud pour l'hiver.",
            "price": 49.99,
            "image": "https://placehold.co/600x400/444/fff?text=Sweatshirt",
            "sizes": ["M", "L", "XL", "XXL"],
            "colors": ["Bleu", "Gris", "Noir"],
            "type": "premium",
            "productType": "Sweatshirt",
            "allowCustomization": False,
            "tickets": 1,
            "linkedLotteries": [1, 3],
        },
    ]
