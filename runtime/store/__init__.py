"""
Storage abstractions for the upload history runtime.

Includes:
- HistoryStore: append-only XML history log (load / append)
- BackupPolicy: per-append and weekly backups of the history file
"""
