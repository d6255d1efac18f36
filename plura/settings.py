# plura/settings.py

import os
from typing import Dict, List, Optional, Tuple

from dotenv import load_dotenv


class SettingsError(RuntimeError):
    pass


# (env var, required, help line)
ENV_VARS: List[Tuple[str, bool, str]] = [
    ("SLACK_SIGNING_SECRET", True,
     "SLACK_SIGNING_SECRET should be set to the signing secret for verifying slack requests"),
    ("DATABASE_URL", True,
     "DATABASE_URL should be set to a SQLAlchemy database URL, e.g. sqlite:///plura.db"),
    ("ENCRYPTION_KEY", False,
     "ENCRYPTION_KEY can be optionally set to a key for encrypting and decrypting the database"),
    ("HOST", False, "HOST can be optionally set to the interface to bind (default 0.0.0.0)"),
    ("PORT", False, "PORT can be optionally set to the port to listen on (default 8080)"),
    ("LOG_LEVEL", False, "LOG_LEVEL can be optionally set to DEBUG, INFO, WARNING or ERROR (default INFO)"),
]


def gen_help() -> str:
    return "\n".join(f"  {name}: {line}" for name, _, line in ENV_VARS)


def any_set(environ: Optional[Dict[str, str]] = None) -> bool:
    env = os.environ if environ is None else environ
    return any(env.get(name) for name, _, _ in ENV_VARS)


class Settings:
    def __init__(self, environ: Optional[Dict[str, str]] = None) -> None:
        if environ is None:
            load_dotenv()
            environ = dict(os.environ)

        if not any_set(environ):
            raise SettingsError(
                "No environment variables are set. See help message below:\n" + gen_help()
            )

        missing = [name for name, required, _ in ENV_VARS if required and not environ.get(name)]
        if missing:
            lines = [line for name, _, line in ENV_VARS if name in missing]
            raise SettingsError("Missing required environment variables:\n  " + "\n  ".join(lines))

        # ---- env config ----
        self.SLACK_SIGNING_SECRET = environ["SLACK_SIGNING_SECRET"]
        self.DATABASE_URL = environ["DATABASE_URL"]
        self.ENCRYPTION_KEY = environ.get("ENCRYPTION_KEY") or None
        self.HOST = environ.get("HOST", "0.0.0.0")
        self.LOG_LEVEL = (environ.get("LOG_LEVEL") or "INFO").upper()

        try:
            self.PORT = int(environ.get("PORT", "8080"))
        except ValueError:
            raise SettingsError(f"PORT must be an integer, got {environ.get('PORT')!r}")
