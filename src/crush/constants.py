GRID_SIZE = 8

# Candy palette in spawn order. The first letter of each name is the hint-grid code.
PALETTE = ['red', 'blue', 'green', 'yellow', 'purple', 'orange']
COLOR_CODES = {name: name[0].upper() for name in PALETTE}
CODE_TO_COLOR = {code: name for name, code in COLOR_CODES.items()}

# Minimum run length that counts as a match.
MIN_RUN = 3

# Scoring
POINTS_PER_DESTROYED = 10
POINTS_PER_DAMAGED = 20

# Streak meter (persists across moves, decays in real time while idle)
STREAK_MAX_LEVEL = 10
STREAK_MULTIPLIER_STEP = 0.5
STREAK_DURATION = 7.0  # seconds for a full meter to drain

# Power-ups
HAMMER_SCORE = 50
UFO_MIN_SPAWNS = 2
UFO_MAX_SPAWNS = 3
PARTY_SPECIAL_COUNT = 3
PARTY_BONUS_PER_TOKEN = 5

# No single award should reasonably reach this many points.
SCORE_SANITY_CEILING = 50000

# Board generation retries before giving up on a board with a valid move.
GENERATOR_MAX_ATTEMPTS = 200
