# beatscope Configuration
# All default values and constants

from dataclasses import dataclass, field, fields, is_dataclass, asdict, replace
from typing import Any, Mapping, Optional

from errors import ConfigurationError
from logging_utils import log_event


CURRENT_CONFIG_VERSION = 1

ENERGY_HISTORY_SIZE = 43        # ~1 s of energy samples at a 60 Hz tick rate
TEMPO_HISTORY_SIZE = 24         # Beat timestamps kept for tempo estimation
MIN_TEMPO_BEATS = 4             # Fewer stored beats than this -> tempo 0
ACTIVE_VOLUME_THRESHOLD = 0.05  # Frame counts as "active" above this volume
MAX_BYTE_VALUE = 255.0          # Full scale of the 8-bit magnitude arrays
TIME_DOMAIN_CENTER = 128.0      # Zero line of the 8-bit waveform

DEFAULT_BAND_CENTERS_HZ = (60, 170, 310, 600, 1000, 3000, 6000, 12000, 14000, 16000)


@dataclass
class FrequencyRange:
    """Band used for beat energy (Hz)"""
    low: float = 60.0                 # Low edge (Hz)
    high: float = 120.0               # High edge (Hz) - kick drum range default


@dataclass
class BeatDetectionConfig:
    """Beat detection parameters"""
    threshold: float = 0.15                  # Energy delta needed for a beat (0.0 - 1.0)
    decay_rate: float = 0.98                 # Low-pass factor on the moving average (0.0-1.0)
    min_time_between_beats_ms: float = 250.0  # Refractory period (ms)
    frequency_range: FrequencyRange = field(default_factory=FrequencyRange)


@dataclass
class ProcessingConfig:
    """Frame normalization / smoothing settings"""
    normalize: bool = True            # Scale frequency levels so the max bin is 1.0
    logarithmic: bool = False         # Log10 scaling after normalization
    smoothing: float = 0.5            # Temporal smoothing factor (0.0-1.0, 0 = off)
    frequency_bands: list = field(default_factory=lambda: list(DEFAULT_BAND_CENTERS_HZ))


@dataclass
class Config:
    """Master configuration"""
    version: int = 1                  # Schema version for persisted configs
    beat: BeatDetectionConfig = field(default_factory=BeatDetectionConfig)
    processing: ProcessingConfig = field(default_factory=ProcessingConfig)

    # Global
    log_level: str = "INFO"                 # Logging level (DEBUG/INFO/WARNING/ERROR)
    report_generation_enabled: bool = True  # Write session reports when a report dir is given


# Accepted ranges: values outside are logged, not rejected
PARAM_RANGE_LIMITS = {
    'threshold': (0.0, 1.0),
    'smoothing': (0.0, 1.0),
    'min_time_between_beats_ms': (0.0, 2000.0),
}


def check_accepted_range(name: str, value: float) -> bool:
    """Warn when a tunable sits outside its accepted range. Returns True if in range."""
    limits = PARAM_RANGE_LIMITS.get(name)
    if limits is None:
        return True
    low, high = limits
    if low <= value <= high:
        return True
    log_event("WARNING", "Config", "Value outside accepted range",
              param=name, value=value, low=low, high=high)
    return False


def validate_beat_config(cfg: BeatDetectionConfig) -> BeatDetectionConfig:
    """Reject option sets the detector cannot run with and store the values as floats."""
    try:
        low = float(cfg.frequency_range.low)
        high = float(cfg.frequency_range.high)
        threshold = float(cfg.threshold)
        decay = float(cfg.decay_rate)
        refractory = float(cfg.min_time_between_beats_ms)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Beat options must be numeric: {e}") from e

    if low < 0:
        raise ConfigurationError("frequency_range.low must be >= 0", low=low)
    if low > high:
        raise ConfigurationError("frequency_range.low must not exceed frequency_range.high",
                                 low=low, high=high)
    if not 0.0 <= decay <= 1.0:
        raise ConfigurationError("decay_rate must be within [0, 1]", decay_rate=decay)
    if refractory < 0:
        raise ConfigurationError("min_time_between_beats_ms must be >= 0",
                                 min_time_between_beats_ms=refractory)

    cfg.threshold = threshold
    cfg.decay_rate = decay
    cfg.min_time_between_beats_ms = refractory
    cfg.frequency_range.low = low
    cfg.frequency_range.high = high

    check_accepted_range('threshold', threshold)
    check_accepted_range('min_time_between_beats_ms', refractory)
    return cfg


def merge_beat_options(current: BeatDetectionConfig,
                       updates: Optional[Mapping[str, Any]]) -> BeatDetectionConfig:
    """Return a new config with `updates` laid over `current`.

    Only keys present (and not None) override. `frequency_range` is merged per
    field, so {'frequency_range': {'high': 200}} keeps the current low edge.
    Unknown keys raise ConfigurationError.
    """
    merged_range = replace(current.frequency_range)
    if not updates:
        return replace(current, frequency_range=merged_range)

    if is_dataclass(updates):
        updates = asdict(updates)

    known = {f.name for f in fields(BeatDetectionConfig)}
    unknown = sorted(set(updates) - known)
    if unknown:
        raise ConfigurationError(f"Unknown beat option(s): {', '.join(unknown)}")

    range_update = updates.get('frequency_range')
    if range_update is not None:
        if is_dataclass(range_update):
            range_update = asdict(range_update)
        if not isinstance(range_update, Mapping):
            raise ConfigurationError("frequency_range must be a mapping with 'low'/'high'")
        bad = sorted(set(range_update) - {'low', 'high'})
        if bad:
            raise ConfigurationError(f"Unknown frequency_range field(s): {', '.join(bad)}")
        merged_range = replace(
            merged_range,
            **{k: v for k, v in range_update.items() if v is not None},
        )

    scalars = {k: v for k, v in updates.items() if k != 'frequency_range' and v is not None}
    merged = replace(current, frequency_range=merged_range, **scalars)
    return validate_beat_config(merged)


def apply_dict_to_dataclass(target, data) -> None:
    """Recursively apply values from a dict onto a dataclass instance.
    Unknown keys are ignored."""
    if not isinstance(data, dict):
        return

    for key, value in data.items():
        if not hasattr(target, key):
            continue

        current = getattr(target, key)

        if is_dataclass(current) and isinstance(value, dict):
            apply_dict_to_dataclass(current, value)
            continue

        setattr(target, key, value)


def _restore_none_fields(target, defaults) -> None:
    for f in fields(target):
        value = getattr(target, f.name)
        default = getattr(defaults, f.name)
        if is_dataclass(value):
            _restore_none_fields(value, default)
        elif value is None:
            setattr(target, f.name, default)


def migrate_config(config: Config, loaded_version) -> None:
    """Upgrade older config structures to the current schema.
    Fills None values with defaults, repairs unusable values and bumps version."""
    try:
        version = int(loaded_version) if loaded_version is not None else 0
    except (TypeError, ValueError):
        version = 0

    if version < 1:
        log_event("INFO", "Config", "Migrating config", from_version=version,
                  to_version=CURRENT_CONFIG_VERSION)

    # Nested sections replaced by scalars in a hand-edited file
    if not isinstance(config.beat, BeatDetectionConfig):
        config.beat = BeatDetectionConfig()
    if not isinstance(config.beat.frequency_range, FrequencyRange):
        config.beat.frequency_range = FrequencyRange()
    if not isinstance(config.processing, ProcessingConfig):
        config.processing = ProcessingConfig()

    _restore_none_fields(config, Config())

    # Always clamp smoothing into its usable range
    try:
        smoothing = float(config.processing.smoothing)
    except (TypeError, ValueError):
        smoothing = 0.5
    config.processing.smoothing = max(0.0, min(1.0, smoothing))

    if not isinstance(config.processing.frequency_bands, list) or not config.processing.frequency_bands:
        config.processing.frequency_bands = list(DEFAULT_BAND_CENTERS_HZ)

    try:
        validate_beat_config(config.beat)
    except ConfigurationError as e:
        log_event("WARNING", "Config", "Invalid beat options, restoring defaults", error=e)
        config.beat = BeatDetectionConfig()

    config.version = CURRENT_CONFIG_VERSION

