import sqlite3
import sys

from schema import SchemaManager


def migrate(db_path='workout.db'):
    """Create missing tables and apply pending migrations to ``db_path``."""
    conn = sqlite3.connect(db_path, isolation_level=None)
    try:
        conn.execute("PRAGMA foreign_keys=ON;")
        manager = SchemaManager()
        applied = manager.initialize(conn)
        return applied, manager.current_version(conn)
    finally:
        conn.close()

if __name__ == '__main__':
    path = sys.argv[1] if len(sys.argv) > 1 else 'workout.db'
    applied, version = migrate(path)
    print(f"Applied {applied} migration(s); schema version {version}")
