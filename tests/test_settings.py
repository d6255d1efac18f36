import pytest

from plura.settings import Settings, SettingsError, any_set, gen_help


def test_nothing_set_explains_every_variable() -> None:
    with pytest.raises(SettingsError) as excinfo:
        Settings(environ={})

    message = str(excinfo.value)
    assert message.startswith("No environment variables are set")
    assert gen_help() in message
    assert not any_set({})


def test_missing_required_variable() -> None:
    with pytest.raises(SettingsError, match="DATABASE_URL"):
        Settings(environ={"SLACK_SIGNING_SECRET": "s"})


def test_port_must_be_an_integer() -> None:
    with pytest.raises(SettingsError, match="PORT"):
        Settings(environ={"SLACK_SIGNING_SECRET": "s", "DATABASE_URL": "sqlite://", "PORT": "eighty"})


def test_defaults(settings) -> None:
    assert settings.HOST == "0.0.0.0"
    assert settings.PORT == 8080
    assert settings.LOG_LEVEL == "INFO"
    assert settings.ENCRYPTION_KEY is None


def test_overrides() -> None:
    settings = Settings(environ={
        "SLACK_SIGNING_SECRET": "s",
        "DATABASE_URL": "sqlite:///plura.db",
        "ENCRYPTION_KEY": "hunter2",
        "PORT": "3000",
        "LOG_LEVEL": "debug",
    })

    assert settings.PORT == 3000
    assert settings.LOG_LEVEL == "DEBUG"
    assert settings.ENCRYPTION_KEY == "hunter2"
