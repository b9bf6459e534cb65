import pytest

from gambabot.config import load_config


def test_load_config_defaults(env_setup, tmp_path):
    cfg = load_config(tmp_path / "missing.env")
    assert cfg.client_id == "cid"
    assert cfg.bot_user_id == "123"
    assert cfg.prefix == "$"
    assert cfg.initial_channels == ("riotgames",)
    assert cfg.grant_interval == 600.0
    assert cfg.grant_amount == 10
    assert cfg.grant_inactive_amount == 3
    assert cfg.duel_sweep_interval == 30.0


def test_load_config_overrides(env_setup, monkeypatch, tmp_path):
    monkeypatch.setenv("INITIAL_CHANNELS", "#Foo; bar")
    monkeypatch.setenv("CHANNEL_PREFIXES", "foo=!,bad, bar = ?")
    monkeypatch.setenv("OWNERS", "Admin")
    monkeypatch.setenv("GRANT_AMOUNT", "25")
    cfg = load_config(tmp_path / "missing.env")

    assert cfg.initial_channels == ("foo", "bar")
    assert cfg.owners == ("admin",)
    assert cfg.grant_amount == 25
    assert cfg.prefix_for("FOO") == "!"
    assert cfg.prefix_for("bar") == "?"
    assert cfg.prefix_for("baz") == "$"


def test_load_config_reads_env_file(env_setup, monkeypatch, tmp_path):
    monkeypatch.delenv("TWITCH_CLIENT_ID")
    env_file = tmp_path / "app.env"
    env_file.write_text("TWITCH_CLIENT_ID=fromfile\n", encoding="utf-8")
    cfg = load_config(env_file)
    assert cfg.client_id == "fromfile"
    monkeypatch.delenv("TWITCH_CLIENT_ID")


def test_missing_credentials_exit(env_setup, monkeypatch, tmp_path):
    monkeypatch.delenv("TWITCH_ACCESS_TOKEN")
    with pytest.raises(SystemExit) as exc:
        load_config(tmp_path / "missing.env")
    assert "TWITCH_ACCESS_TOKEN" in str(exc.value)


def test_bad_number_exits(env_setup, monkeypatch, tmp_path):
    monkeypatch.setenv("GRANT_INTERVAL_SECONDS", "soon")
    with pytest.raises(SystemExit):
        load_config(tmp_path / "missing.env")


@pytest.mark.parametrize("value", ["0", "-5"])
def test_grant_interval_must_be_positive(env_setup, monkeypatch, tmp_path, value):
    monkeypatch.setenv("GRANT_INTERVAL_SECONDS", value)
    with pytest.raises(SystemExit) as exc:
        load_config(tmp_path / "missing.env")
    assert "GRANT_INTERVAL_SECONDS must be positive" in str(exc.value)


def test_zero_disables_duel_sweep(env_setup, monkeypatch, tmp_path):
    monkeypatch.setenv("DUEL_SWEEP_SECONDS", "0")
    cfg = load_config(tmp_path / "missing.env")
    assert cfg.duel_sweep_interval == 0


@pytest.mark.parametrize(
    "key", ["DUEL_SWEEP_SECONDS", "GRANT_AMOUNT", "GRANT_INACTIVE_AMOUNT"]
)
def test_negative_values_exit(env_setup, monkeypatch, tmp_path, key):
    monkeypatch.setenv(key, "-1")
    with pytest.raises(SystemExit) as exc:
        load_config(tmp_path / "missing.env")
    assert f"{key} must be non-negative" in str(exc.value)
