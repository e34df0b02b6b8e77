# study_planner/core/constants.py
PLANS = "plans"
TASKS = "tasks"
USERS = "users"
SESSIONS = "sessions"

SESSION_MODES = ("pomodoro", "short", "long")
FOCUS_MODE = "pomodoro"

STATUS_RUNNING = "running"
STATUS_COMPLETED = "completed"
STATUS_CANCELLED = "cancelled"
TERMINAL_STATUSES = (STATUS_COMPLETED, STATUS_CANCELLED)

DEFAULT_PLANNED_MINUTES = 25
DEFAULT_PRIORITY = 3
DEFAULT_ENERGY_LEVEL = 3
DEFAULT_PLAN_SOURCE = "gemini"
PLAN_VERSION = 1

PLAN_FETCH_FLOOR = 50
PLAN_FETCH_FACTOR = 5
SELF_HEAL_SCAN_LIMIT = 50
TASK_FETCH_LIMIT = 100

STREAK_LOOKBACK_DAYS = 45
STREAK_MAX_DAYS = 365
WEEK_DAYS = 7

BURNOUT_MIN = 0
BURNOUT_MAX = 100
