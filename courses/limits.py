"""Field limits shared by the ledger checks and the database schema.

These are part of the schema (column lengths and the rating CHECK
constraint), so changing one requires a migration.
"""

MAX_NAME_LENGTH = 100
MAX_COMMENTARY_LENGTH = 500
MIN_RATING = 1
MAX_RATING = 5
