"""Runtime settings read from environment variables."""
import json
import logging
import os
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional

logger = logging.getLogger(__name__)


# Destination id -> environment variable holding its webhook URL
WEBHOOK_ENV = {
    'events': 'DISCORD_EVENTS_WEBHOOK',
    'tunnel': 'DISCORD_TUNNEL_WEBHOOK',
    'war': 'DISCORD_WAR_WEBHOOK',
    'crime': 'DISCORD_CRIME_WEBHOOK',
    'recherche': 'DISCORD_RECHERCHE_WEBHOOK',
    'discours': 'DISCORD_DISCOURS_WEBHOOK',
    'rumeur': 'DISCORD_RUMEURS_WEBHOOK',
    'politique': 'DISCORD_POL_WEBHOOK',
    'finance': 'DISCORD_FINANCE_WEBHOOK',
}


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw == '':
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Invalid integer for {name}: {raw!r}, using {default}")
        return default


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw == '':
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Invalid number for {name}: {raw!r}, using {default}")
        return default


def _env_json_map(env: Mapping[str, str], name: str) -> Dict[str, str]:
    raw = env.get(name)
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except ValueError as e:
        logger.warning(f"Invalid JSON for {name}: {e}")
        return {}
    if not isinstance(data, dict):
        logger.warning(f"{name} must be a JSON object, ignoring")
        return {}
    return {str(k): str(v) for k, v in data.items()}


@dataclass(frozen=True)
class Settings:
    """Immutable settings for one run."""
    feed_url: str = 'http://www.kraland.org/monde/evenements'
    data_dir: str = './data'
    territories_file: str = './kraland_territories.json'
    max_pages: int = 500
    max_empty_pages: int = 5
    timeout_seconds: int = 30
    event_ttl_days: int = 30
    log_level: str = 'INFO'
    table_name: Optional[str] = None
    financial_exclusion: str = 'all'
    page_delay_seconds: float = 0.2
    section_delay_seconds: float = 0.3
    webhooks: Dict[str, str] = field(default_factory=dict)
    stats_webhook: Optional[str] = None
    empire_roles: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> 'Settings':
        env = os.environ if env is None else env
        defaults = cls()

        webhooks = {
            destination: env[name]
            for destination, name in WEBHOOK_ENV.items()
            if env.get(name)
        }

        return cls(
            feed_url=env.get('FEED_URL') or defaults.feed_url,
            data_dir=env.get('DATA_DIR') or defaults.data_dir,
            territories_file=env.get('TERRITORIES_FILE') or defaults.territories_file,
            max_pages=_env_int(env, 'MAX_PAGES', defaults.max_pages),
            max_empty_pages=_env_int(env, 'MAX_EMPTY_PAGES', defaults.max_empty_pages),
            timeout_seconds=_env_int(env, 'TIMEOUT_SECONDS', defaults.timeout_seconds),
            event_ttl_days=_env_int(env, 'EVENT_TTL_DAYS', defaults.event_ttl_days),
            log_level=env.get('LOG_LEVEL') or defaults.log_level,
            table_name=env.get('TABLE_NAME') or None,
            financial_exclusion=env.get('FINANCIAL_EXCLUSION') or defaults.financial_exclusion,
            page_delay_seconds=_env_float(env, 'PAGE_DELAY_SECONDS', defaults.page_delay_seconds),
            section_delay_seconds=_env_float(
                env, 'SECTION_DELAY_SECONDS', defaults.section_delay_seconds
            ),
            webhooks=webhooks,
            stats_webhook=env.get('DISCORD_STATS_WEBHOOK') or None,
            empire_roles=_env_json_map(env, 'EMPIRE_ROLES')
        )
