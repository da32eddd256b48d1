from .sqlite_support import DatabaseContext, JournalModes, SqliteWriteDispatcher, \
    SynchronousWriter
from .tables import SimpleDataRow, SimpleDataTable
