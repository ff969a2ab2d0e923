from uiabridge.config import access
from uiabridge.config.schema import Config


def test_get_config_uses_cache_and_force_reload(monkeypatch, tmp_path):
    calls = {"n": 0}

    def _fake_load_config(_path=None):
        calls["n"] += 1
        cfg = Config()
        cfg.supervisor.pool_size = calls["n"]
        return cfg

    monkeypatch.setattr(access, "load_config", _fake_load_config)
    access.clear_config_cache()
    path = tmp_path / "config.json"

    first = access.get_config(config_path=path)
    second = access.get_config(config_path=path)
    third = access.get_config(config_path=path, force_reload=True)

    assert first.supervisor.pool_size == second.supervisor.pool_size
    assert third.supervisor.pool_size != second.supervisor.pool_size
    assert calls["n"] == 2
    access.clear_config_cache()


def test_resolve_config_path_prefers_env_override(monkeypatch, tmp_path):
    override = tmp_path / "custom.json"
    monkeypatch.setenv(access.CONFIG_PATH_ENV, str(override))
    assert access.resolve_config_path() == override.resolve()
    explicit = tmp_path / "explicit.json"
    assert access.resolve_config_path(explicit) == explicit.resolve()
