"""
Tests for configuration loading and the auth token store.
"""

import pytest
import tomlkit

from config import Config, ConfigurationLoadError
from token_manager import TokenManager

CONFIG_TOML = """\
[server]
name = "Stage Left"
websocket_host = "127.0.0.1"
websocket_port = 8765

[drivers]
timeout = 5

[drivers.keynote]
live_slide_info = true

[presentations]
folder = ""
"""

SECRETS_TOML = """\
[server]
auth_token = "abcd1234"
"""


def write_config(tmp_path, config=CONFIG_TOML, secrets=SECRETS_TOML):
    config_location = tmp_path / "config.toml"
    secrets_location = tmp_path / "secrets.toml"
    config_location.write_text(config)
    secrets_location.write_text(secrets)
    return Config(config_location, secrets_location)


class TestConfig:
    """Loading and saving the TOML documents."""

    @pytest.mark.asyncio
    async def test_load(self, tmp_path):
        config = write_config(tmp_path)

        await config.initialize()

        assert config.config["server"]["websocket_port"] == 8765
        assert config.config["drivers"]["keynote"]["live_slide_info"]
        assert config.secrets["server"]["auth_token"] == "abcd1234"

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path):
        config = Config(tmp_path / "config.toml", tmp_path / "secrets.toml")

        with pytest.raises(ConfigurationLoadError):
            await config.initialize()

    @pytest.mark.asyncio
    async def test_invalid_toml(self, tmp_path):
        config = write_config(tmp_path, config="[server\nname = ")

        with pytest.raises(ConfigurationLoadError):
            await config.initialize()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("port", ["70000", "-1", '"8765"'])
    async def test_invalid_port(self, tmp_path, port):
        config = write_config(tmp_path, config=CONFIG_TOML.replace("8765", port))

        with pytest.raises(ConfigurationLoadError):
            await config.initialize()

    @pytest.mark.asyncio
    async def test_invalid_token_length(self, tmp_path):
        config = write_config(tmp_path, secrets='[server]\nauth_token = "short"\n')

        with pytest.raises(ConfigurationLoadError):
            await config.initialize()

    @pytest.mark.asyncio
    async def test_secrets_without_token(self, tmp_path):
        config = write_config(tmp_path, secrets="[server]\n")

        await config.initialize()

        assert "auth_token" not in config.secrets["server"]

    @pytest.mark.asyncio
    async def test_save_keeps_comments(self, tmp_path):
        """Saving rewrites values without losing the user's formatting."""
        config = write_config(tmp_path, config="# my helper\n" + CONFIG_TOML)
        await config.initialize()
        config.config["presentations"]["folder"] = "/talks"

        await config.save_config()

        saved = (tmp_path / "config.toml").read_text()
        assert saved.startswith("# my helper")
        assert tomlkit.parse(saved)["presentations"]["folder"] == "/talks"

    @pytest.mark.asyncio
    async def test_unopened_documents_are_not_written(self, tmp_path):
        config = write_config(tmp_path, secrets='[server]\nauth_token = "x"\n')
        with pytest.raises(ConfigurationLoadError):
            await config.initialize()

        await config.close()

        assert (tmp_path / "secrets.toml").read_text() == '[server]\nauth_token = "x"\n'


class TestTokenManager:
    """Auth token generation and verification."""

    def test_generate_token(self):
        token = TokenManager.generate_token()

        assert len(token) == 8
        assert int(token, 16) >= 0

    def test_create_when_missing(self):
        secrets = {"server": {}}
        token_manager = TokenManager(secrets)

        token = token_manager.get_or_create_token()

        assert secrets["server"]["auth_token"] == token
        assert "token_generated_at" in secrets["server"]
        assert token_manager.get_or_create_token() == token

    def test_existing_token_is_kept(self, token_manager):
        assert token_manager.get_or_create_token() == "abcd1234"

    def test_regenerate(self, token_manager):
        token = token_manager.regenerate_token()

        assert token != "abcd1234"
        assert token_manager.get_token_info()["token"] == token
        assert token_manager.get_token_info()["generated_at"] is not None

    def test_verify(self, token_manager):
        assert token_manager.verify("abcd1234")
        assert not token_manager.verify("abcd1235")
        assert not token_manager.verify(None)
        assert not token_manager.verify(12345678)

    def test_verify_without_token(self):
        assert not TokenManager({"server": {}}).verify("")

    @pytest.mark.asyncio
    async def test_token_persists_through_secrets(self, tmp_path):
        config = write_config(tmp_path, secrets="[server]\n")
        await config.initialize()
        token = TokenManager(config.secrets).get_or_create_token()

        await config.save_secrets()

        reloaded = write_config(tmp_path, secrets=(tmp_path / "secrets.toml").read_text())
        await reloaded.initialize()
        assert TokenManager(reloaded.secrets).get_current_token() == token
