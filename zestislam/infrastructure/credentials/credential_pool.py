"""Pool of API credentials with deterministic round-robin rotation.

The pool is built from configuration (a comma-separated base variable,
numbered variants BASE1..BASEN, and an optional YAML list), sanitized,
deduplicated in first-seen order, and exposes the currently active key.
Rotation only advances a cursor; callers decide when to rotate.
"""

import logging
import re
import threading
from typing import Any, Callable, Iterable, List, Mapping, Optional, Union

from zestislam.domain.models.common import ApiKey
from zestislam.domain.models.errors import CredentialPoolEmpty
from zestislam.infrastructure.config import settings
from zestislam.infrastructure.monitoring.logger_setup import mask_secret, redaction_filter

logger = logging.getLogger(__name__)

# Quotes, whitespace and escaped newlines left behind by deployment tooling
_ARTIFACTS = re.compile(r"""["'\s]|\\n|\\r""")

RawConfig = Union[str, Iterable[Any], Mapping[str, Any]]
ConfigReader = Callable[[], Mapping[str, Any]]


def mask_credential(key: str) -> str:
    """Masked form of a credential, safe for logs and UI."""
    return mask_secret(key)


def sanitize_credential(value: Any) -> str:
    """Strips quoting and whitespace artifacts from one credential fragment."""
    if not isinstance(value, str):
        return ''
    return _ARTIFACTS.sub('', value)


def parse_credentials(raw: RawConfig) -> List[ApiKey]:
    """Parses raw configuration into a deduplicated, ordered list of credentials.

    Accepts a single (possibly comma-separated) string, an iterable of strings,
    or a mapping of source name to either of those. Empty entries are dropped
    and duplicates keep their first position.
    """
    if isinstance(raw, Mapping):
        fragments: List[Any] = list(raw.values())
    elif isinstance(raw, str):
        fragments = [raw]
    else:
        fragments = list(raw)

    keys: List[ApiKey] = []
    seen = set()
    for fragment in fragments:
        if isinstance(fragment, (list, tuple)):
            parts = [p for item in fragment for p in (item.split(',') if isinstance(item, str) else [])]
        elif isinstance(fragment, str):
            parts = fragment.split(',')
        else:
            continue
        for part in parts:
            clean = sanitize_credential(part)
            if clean and clean not in seen:
                seen.add(clean)
                keys.append(ApiKey(clean))
    return keys


class CredentialPool:
    """Holds the credentials for one provider and selects the active one.

    One instance per provider is created by the composition root and injected
    into the client factory and the resilient invoker. Tests build isolated
    instances with an explicit config_reader.
    """

    def __init__(self, provider: str = "gemini", config_reader: Optional[ConfigReader] = None):
        """Initializes the pool and loads credentials from configuration.

        Args:
            provider: Provider name, used to locate credential settings and in logs.
            config_reader: Callable returning the raw credential sources; defaults
                to settings.get_credential_sources(provider).
        """
        self.provider = provider
        self._config_reader = config_reader or (lambda: settings.get_credential_sources(provider))
        self._keys: List[ApiKey] = []
        self._cursor = 0
        self._source_names: List[str] = []
        self._lock = threading.Lock()
        self.initialize()

    # --- Lifecycle ---

    def initialize(self, raw_config: Optional[RawConfig] = None) -> None:
        """Builds the pool from raw configuration and resets the cursor.

        Fails soft: an empty result leaves the pool empty and get_active()
        will raise CredentialPoolEmpty.

        Args:
            raw_config: Explicit credential material; read from the config
                reader when None.
        """
        if raw_config is None:
            raw_config = self._config_reader()
        keys = parse_credentials(raw_config)
        source_names = list(raw_config.keys()) if isinstance(raw_config, Mapping) else []

        with self._lock:
            self._keys = keys
            self._cursor = 0
            self._source_names = source_names

        redaction_filter.register(keys)
        if keys:
            logger.info(f"Credential pool '{self.provider}' initialized with {len(keys)} key(s).")
        else:
            logger.error(f"Credential pool '{self.provider}': no valid API keys found in configuration.")

    reinitialize = initialize

    # --- Selection ---

    def get_active(self) -> ApiKey:
        """Returns the credential at the cursor.

        Raises:
            CredentialPoolEmpty: If no credential is configured, even after one
                lazy re-read of the configuration.
        """
        if not self._keys:
            logger.debug(f"Credential pool '{self.provider}' empty; re-reading configuration.")
            self.initialize()
        with self._lock:
            if not self._keys:
                raise CredentialPoolEmpty(self._source_names or [self.provider])
            return self._keys[self._cursor % len(self._keys)]

    def rotate(self) -> None:
        """Advances the cursor by one, wrapping around. No-op for pools of size 0 or 1."""
        with self._lock:
            if len(self._keys) <= 1:
                return
            self._cursor = (self._cursor + 1) % len(self._keys)
            position = self._cursor + 1
            size = len(self._keys)
        logger.warning(f"Credential pool '{self.provider}': rotating to key #{position} of {size}.")

    # --- Introspection ---

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def size(self) -> int:
        return len(self._keys)

    def __len__(self) -> int:
        return len(self._keys)

    def masked_keys(self) -> List[str]:
        """Masked credentials in pool order, for status displays."""
        return [mask_credential(k) for k in self._keys]
