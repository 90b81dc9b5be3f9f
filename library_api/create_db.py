import logging

from .config import get_settings
from .database import build_engine, check_connection, sync_schema


def main():
    logging.basicConfig(level=logging.INFO)
    settings = get_settings()
    engine = build_engine(settings.database_url)
    check_connection(engine)
    sync_schema(engine)
    engine.dispose()
    print('Database and tables created!')


if __name__ == "__main__":
    main()
