"""Core constants: inventory bucket hashes and shared literal values.

Loadouts are keyed by the string form of the inventory bucket hash the item
is equipped in. The three weapon buckets drive history metadata, best-fit
scoring and merge eligibility.
"""

BUCKET_KINETIC = 1498876634
BUCKET_ENERGY = 2465295065
BUCKET_POWER = 953998645

KINETIC_SLOT = str(BUCKET_KINETIC)
ENERGY_SLOT = str(BUCKET_ENERGY)
POWER_SLOT = str(BUCKET_POWER)

# Best-fit scoring: primary weapons weigh more than the power weapon.
BEST_FIT_PRIMARY_WEIGHT = 2
BEST_FIT_POWER_WEIGHT = 1
BEST_FIT_HIGH_SCORE = 4
BEST_FIT_MEDIUM_SCORE = 2

# Loadout stats: how many loadouts a ranking returns, and the games a loadout
# needs before its performance is ranked.
STATS_LOADOUT_LIMIT = 10
STATS_MINIMUM_GAMES = 1
