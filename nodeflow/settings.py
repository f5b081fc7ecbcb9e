"""User-facing settings - persisted to ~/.config/nodeflow/settings.json.

Also owns logging setup: configure_logging() installs one stream handler on
the "nodeflow" logger, at the level named by the settings unless the caller
overrides it.
"""

import json
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

CONFIG_PATH = Path.home() / '.config' / 'nodeflow' / 'settings.json'

DEFAULTS = {
    'log_level': 'WARNING',
    # Raise PropagationCycleError instead of recursing forever when data
    # propagation re-enters a node.  Off by default: the scene already
    # refuses connections that would close a cycle.
    'cycle_guard': False,
    'node_width': 180,
    'header_height': 28,
    'port_row_height': 20,
}

LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')

_TRUE = ('true', 'yes', 'on', '1')
_FALSE = ('false', 'no', 'off', '0')


def _as_bool(key, value, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        if value.strip().lower() in _TRUE:
            return True
        if value.strip().lower() in _FALSE:
            return False
    logger.warning("ignoring non-boolean %s value %r", key, value)
    return default


class Settings:
    def __init__(self, path=None):
        self.path = Path(path) if path else CONFIG_PATH
        self.log_level: str = DEFAULTS['log_level']
        self.cycle_guard: bool = DEFAULTS['cycle_guard']
        self.node_width: float = DEFAULTS['node_width']
        self.header_height: float = DEFAULTS['header_height']
        self.port_row_height: float = DEFAULTS['port_row_height']
        self._load()

    def _load(self):
        if not self.path.exists():
            return
        try:
            with open(self.path) as f:
                d = json.load(f)
            self.log_level = str(d.get('log_level', self.log_level)).upper()
            self.cycle_guard = _as_bool('cycle_guard', d.get('cycle_guard', self.cycle_guard),
                                        self.cycle_guard)
            self.node_width = float(d.get('node_width', self.node_width))
            self.header_height = float(d.get('header_height', self.header_height))
            self.port_row_height = float(d.get('port_row_height', self.port_row_height))
        except (OSError, ValueError, TypeError, AttributeError) as e:
            # keep defaults on any parse error
            logger.warning("ignoring unreadable settings file %s: %s", self.path, e)

    def to_dict(self) -> dict:
        return {
            'log_level': self.log_level,
            'cycle_guard': self.cycle_guard,
            'node_width': self.node_width,
            'header_height': self.header_height,
            'port_row_height': self.port_row_height,
        }

    def save(self):
        """Persist current settings to the user config file."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)


def configure_logging(level=None, settings: Settings = None) -> None:
    """Attach a stream handler to the package logger.

    level may be a level name or number; when omitted the settings decide.
    """
    if level is None:
        level = (settings or Settings()).log_level
    if isinstance(level, str):
        level = level.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"invalid log level: {level}")
        level = getattr(logging, level)

    root = logging.getLogger('nodeflow')
    for h in root.handlers[:]:
        root.removeHandler(h)
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(
        "[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"))
    root.addHandler(handler)
    root.setLevel(level)
