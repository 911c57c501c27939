"""Local/remote data synchronization layer for the WinShirt storefront."""

__version__ = "0.4.0"
