# custom_components/polar_sampler/const.py

from __future__ import annotations

# --- Core ---
DOMAIN = "polar_sampler"
PLATFORMS: list[str] = ["sensor", "switch", "select"]

# Bus event carrying every notification ({"type": <tag>, ...})
EVENT_POLAR_SAMPLER = f"{DOMAIN}_event"

# Notification tags
EVENT_CHANGE_RECORD_STATUS = "changeRecordStatus"
EVENT_CHANGE_MOTORING_STATUS = "changeMotoringStatus"
EVENT_POLAR_UPDATED = "polarUpdated"
EVENT_UPDATE_LIVE_PERFORMANCE = "updateLivePerformance"
EVENT_RECORD_ERRORS = "recordErrors"

# Recording modes
MODE_MANUAL = "manual"
MODE_AUTOMATIC = "automatic"
RECORDING_MODES: list[str] = [MODE_MANUAL, MODE_AUTOMATIC]

# Motoring detection modes
MOTORING_AUTO_STATE = "auto_state"
MOTORING_REVOLUTIONS = "revolutions"
MOTORING_MODES: list[str] = [MOTORING_AUTO_STATE, MOTORING_REVOLUTIONS]

# Propulsion state meaning "engine off"
PROPULSION_STOPPED = "stopped"

# Below this a baseline or expected speed cannot be evaluated
NEGLIGIBLE = 0.01

# --- Source entities ---
CONF_TWA = "entity_twa"              # True Wind Angle
CONF_TWS = "entity_tws"              # True Wind Speed
CONF_STW = "entity_stw"              # Speed Through Water
CONF_COG = "entity_cog"              # Course Over Ground
CONF_HEADING = "entity_heading"      # Heading
CONF_TWD = "entity_twd"              # True Wind Direction
CONF_PROPULSION_STATE = "entity_propulsion_state"   # list of entity_ids
CONF_PROPULSION_REVS = "entity_propulsion_revs"     # list of entity_ids

# --- Sampling ---
CONF_SAMPLE_INTERVAL = "sample_interval_ms"
CONF_STALE_MULTIPLIER = "stale_multiplier"
CONF_MIN_STW = "min_stw"             # kn, below this the boat is not moving

# --- Stability filters ---
CONF_USE_COURSE_FILTER = "use_course_filter"
CONF_COURSE_WINDOW = "course_window_s"
CONF_COURSE_THRESHOLD = "course_threshold_deg"

CONF_USE_HEADING_FILTER = "use_heading_filter"
CONF_HEADING_WINDOW = "heading_window_s"
CONF_HEADING_THRESHOLD = "heading_threshold_deg"

CONF_USE_TWD_FILTER = "use_twd_filter"
CONF_TWD_WINDOW = "twd_window_s"
CONF_TWD_THRESHOLD = "twd_threshold_deg"

# --- Admission filters ---
CONF_USE_VMG_FILTER = "use_vmg_filter"
CONF_VMG_RATIO_UP = "vmg_ratio_up"
CONF_VMG_RATIO_DOWN = "vmg_ratio_down"

CONF_USE_STD_DEV = "use_std_dev"

CONF_USE_AVG_STW_FILTER = "use_avg_stw_filter"
CONF_AVG_STW_WINDOW = "avg_stw_window_s"
CONF_AVG_STW_UP = "avg_stw_ratio_up"
CONF_AVG_STW_DOWN = "avg_stw_ratio_down"

CONF_USE_AVG_TWA_FILTER = "use_avg_twa_filter"
CONF_AVG_TWA_WINDOW = "avg_twa_window_s"
CONF_AVG_TWA_UP = "avg_twa_ratio_up"
CONF_AVG_TWA_DOWN = "avg_twa_ratio_down"

CONF_USE_AVG_TWS_FILTER = "use_avg_tws_filter"
CONF_AVG_TWS_WINDOW = "avg_tws_window_s"
CONF_AVG_TWS_UP = "avg_tws_ratio_up"
CONF_AVG_TWS_DOWN = "avg_tws_ratio_down"

# --- Polar table ---
CONF_ANGLE_STEP = "angle_step"
CONF_SPEED_STEP = "speed_step"
CONF_POLAR_FILE = "polar_file"
CONF_AUTO_FILE = "auto_file"

# --- Motoring detection ---
CONF_MOTORING_MODE = "motoring_mode"
CONF_MAX_IDLE_RPM = "max_idle_rpm"

# Keys that hold entity ids (not tunables)
ENTITY_KEYS: tuple[str, ...] = (
    CONF_TWA, CONF_TWS, CONF_STW, CONF_COG, CONF_HEADING, CONF_TWD,
    CONF_PROPULSION_STATE, CONF_PROPULSION_REVS,
)

# --- Defaults used when keys are omitted ---
DEFAULTS: dict[str, float | int | bool | str | list[str]] = {
    CONF_COG: "",
    CONF_HEADING: "",
    CONF_TWD: "",
    CONF_PROPULSION_STATE: [],
    CONF_PROPULSION_REVS: [],

    CONF_SAMPLE_INTERVAL: 1000,
    CONF_STALE_MULTIPLIER: 3.0,
    CONF_MIN_STW: 1.0,

    CONF_USE_COURSE_FILTER: True,
    CONF_COURSE_WINDOW: 10,
    CONF_COURSE_THRESHOLD: 5.0,

    CONF_USE_HEADING_FILTER: False,
    CONF_HEADING_WINDOW: 10,
    CONF_HEADING_THRESHOLD: 5.0,

    CONF_USE_TWD_FILTER: False,
    CONF_TWD_WINDOW: 10,
    CONF_TWD_THRESHOLD: 10.0,

    CONF_USE_VMG_FILTER: False,
    CONF_VMG_RATIO_UP: 1.2,
    CONF_VMG_RATIO_DOWN: 0.5,

    CONF_USE_STD_DEV: False,

    CONF_USE_AVG_STW_FILTER: False,
    CONF_AVG_STW_WINDOW: 30,
    CONF_AVG_STW_UP: 1.2,
    CONF_AVG_STW_DOWN: 0.8,

    CONF_USE_AVG_TWA_FILTER: False,
    CONF_AVG_TWA_WINDOW: 30,
    CONF_AVG_TWA_UP: 1.2,
    CONF_AVG_TWA_DOWN: 0.8,

    CONF_USE_AVG_TWS_FILTER: False,
    CONF_AVG_TWS_WINDOW: 30,
    CONF_AVG_TWS_UP: 1.3,
    CONF_AVG_TWS_DOWN: 0.7,

    CONF_ANGLE_STEP: 5.0,
    CONF_SPEED_STEP: 2.0,
    CONF_POLAR_FILE: "polar-data.json",
    CONF_AUTO_FILE: "auto-recording-polar.json",

    CONF_MOTORING_MODE: MOTORING_AUTO_STATE,
    CONF_MAX_IDLE_RPM: 1000.0,
}
