MIN_VALUE = 1
EMPTY_VALUE = 0

DEFAULT_DIMENSION = 3
MAX_DIMENSION = 5
DEFAULT_DIFFICULTY = 10

DEFAULT_MAX_SOLUTIONS = 10

MAX_COUNT_JOBS = 100
COUNT_JOB_TTL_SECONDS = 3600.0
CORS_ORIGINS_ENV = "SUDOKU_API_CORS_ORIGINS"
