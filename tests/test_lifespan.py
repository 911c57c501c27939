"""Tests for winshirt_sync.mcp.lifespan -- server startup/shutdown lifecycle.

server_lifespan() loads config (CLI overrides, env, YAML), opens the sync
services, checks connectivity, preloads the catalogue and always closes
the services on exit.  An unreachable backend is not fatal.
"""

from unittest.mock import MagicMock, patch

import pytest

from winshirt_sync.app import SyncServices
from winshirt_sync.mcp.lifespan import server_lifespan
from winshirt_sync.sync.models import SyncMode

_MOD = "winshirt_sync.mcp.lifespan"


@pytest.fixture
def patched(mock_config, fake_client):
    """Patch config sources and inject the fake REST client."""
    built = []

    def _factory(config):
        services = SyncServices(config, client=fake_client)
        built.append(services)
        return services

    with (
        patch(f"{_MOD}.load_dotenv") as mock_dotenv,
        patch(f"{_MOD}.discover_config_files", return_value=[]),
        patch(f"{_MOD}.load_config", return_value=mock_config) as mock_load,
        patch(f"{_MOD}.SyncServices", side_effect=_factory),
        patch(f"{_MOD}._stderr_print") as mock_print,
    ):
        yield {
            "dotenv": mock_dotenv,
            "load": mock_load,
            "print": mock_print,
            "built": built,
        }


def _printed(mock_print) -> str:
    return "\n".join(c.args[0] for c in mock_print.call_args_list)


class TestServerLifespanSuccess:
    async def test_yields_opened_services(self, patched, fake_client):
        async with server_lifespan() as ctx:
            services = ctx["services"]
            assert services is patched["built"][0]
            assert services.guard.mode == SyncMode.ONLINE

        patched["dotenv"].assert_called_once()
        assert fake_client.closed

    async def test_preloads_catalogue(self, patched):
        async with server_lifespan() as ctx:
            cache = ctx["services"].cache
            assert cache.has("products")
            assert cache.has("lotteries")

    async def test_overrides_passed_to_load_config(self, patched):
        overrides = {"url": "https://cli.example.co", "api_key": "k", "insecure": True}
        async with server_lifespan(config_overrides=overrides):
            pass

        patched["load"].assert_called_once_with(
            remote_url="https://cli.example.co",
            api_key="k",
            cache_dir=None,
            insecure=True,
            debug=False,
            yaml_fallbacks=None,
        )

    async def test_yaml_fallbacks_from_config_file(self, patched, tmp_path):
        config_file = tmp_path / "config.yml"
        raw = {"remote": {"url": "https://yaml.example.co"}, "sync": {"batch_size": 5}}
        with (
            patch(f"{_MOD}.discover_config_files", return_value=[config_file]),
            patch(f"{_MOD}.load_hierarchical_config", return_value=raw),
        ):
            async with server_lifespan():
                pass

        fallbacks = patched["load"].call_args.kwargs["yaml_fallbacks"]
        assert fallbacks["url"] == "https://yaml.example.co"
        assert fallbacks["batch_size"] == 5


class TestServerLifespanDegraded:
    async def test_unreachable_backend_is_not_fatal(self, patched, fake_client):
        fake_client.unreachable = True

        async with server_lifespan() as ctx:
            assert ctx["services"].guard.mode == SyncMode.OFFLINE
            # seed data still available offline
            assert ctx["services"].cache.read("products")

        assert "running offline" in _printed(patched["print"])
        assert fake_client.closed

    async def test_missing_tables_reported(self, patched, fake_client):
        fake_client.missing_tables = {"visuals"}

        async with server_lifespan():
            pass

        assert "missing remote tables: visuals" in _printed(patched["print"])

    async def test_services_closed_when_body_raises(self, patched, fake_client):
        with pytest.raises(KeyError):
            async with server_lifespan():
                raise KeyError("boom")
        assert fake_client.closed


class TestServerLifespanConfigErrors:
    async def test_config_error_raises_runtime_error(self):
        with (
            patch(f"{_MOD}.load_dotenv"),
            patch(f"{_MOD}.discover_config_files", return_value=[]),
            patch(
                f"{_MOD}.load_config",
                side_effect=ValueError("Remote URL not found"),
            ),
            patch(f"{_MOD}.SyncServices") as mock_services,
            patch(f"{_MOD}._stderr_print", MagicMock()),
        ):
            with pytest.raises(RuntimeError, match="Configuration error"):
                async with server_lifespan():
                    pass

        mock_services.assert_not_called()
