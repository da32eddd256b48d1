import logging

from wallethistory.history_database import DatabaseContext, JournalModes


logging.disable(logging.CRITICAL)

# CI runs very slowly with sqlite WAL journaling, probably due to networked drives.
DatabaseContext.JOURNAL_MODE = JournalModes.TRUNCATE
