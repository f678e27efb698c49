from dataclasses import dataclass
import os
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv


load_dotenv()


class SettingsError(ValueError):
    pass


def _split_csv(value: str) -> tuple[str, ...]:
    return tuple(item.strip() for item in value.split(",") if item.strip())


def _number(env: Mapping[str, str], key: str, default: str, cast=int):
    raw = env.get(key, default)
    try:
        return cast(raw)
    except ValueError as exc:
        raise SettingsError(f"Invalid {key} value: {raw!r}") from exc


@dataclass(frozen=True)
class Settings:
    emulator_bin_dir: Path = Path("web/client/node_modules/.bin")
    emulator_rules_file: Path = Path("firebase-rules.json")
    emulator_start_timeout: float = 30.0

    server_host: str = "127.0.0.1"
    server_port: int = 8080

    log_level: str = "INFO"

    cors_allowed_origins: tuple[str, ...] = (
        "http://localhost:8080",
        "http://127.0.0.1:8080",
    )


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    env = os.environ if environ is None else environ
    defaults = Settings()
    origins = env.get("CORS_ALLOWED_ORIGINS")
    return Settings(
        emulator_bin_dir=Path(env.get("EMULATOR_BIN_DIR", str(defaults.emulator_bin_dir))),
        emulator_rules_file=Path(env.get("EMULATOR_RULES_FILE", str(defaults.emulator_rules_file))),
        emulator_start_timeout=_number(env, "EMULATOR_START_TIMEOUT", "30", cast=float),
        server_host=env.get("SERVER_HOST", defaults.server_host),
        server_port=_number(env, "SERVER_PORT", "8080"),
        log_level=env.get("LOG_LEVEL", defaults.log_level).upper(),
        cors_allowed_origins=_split_csv(origins) if origins else defaults.cors_allowed_origins,
    )
