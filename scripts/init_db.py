# scripts/init_db.py
from gotocard import create_db_and_tables, load_config


def init():
    print("🔄 Initializing Database...")

    try:
        create_db_and_tables()
        print(f"✅ Success: Database tables created at '{load_config().database_url}'.")
    except Exception as e:
        print(f"❌ Error: {e}")
        raise


if __name__ == "__main__":
    init()
