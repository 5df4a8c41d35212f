import sys
import uuid

import psycopg2

from casetrack.config.settings import Config
from casetrack.utils.security import hash_password


class PostgreSQLSetup:
    def __init__(self, host="localhost", port=5432, database="case_tracker", user="postgres", password="postgres"):
        self.connection_params = {"host": host, "port": port, "database": database, "user": user, "password": password}

    def create_database_if_not_exists(self):
        """Create the database if it doesn't exist"""
        # Connect to default postgres database first
        temp_params = self.connection_params.copy()
        temp_params["database"] = "postgres"

        try:
            conn = psycopg2.connect(**temp_params)
            conn.autocommit = True
            cursor = conn.cursor()

            cursor.execute("SELECT 1 FROM pg_database WHERE datname = %s", (self.connection_params["database"],))
            exists = cursor.fetchone()

            if not exists:
                cursor.execute(f"CREATE DATABASE {self.connection_params['database']}")
                print(f"Database '{self.connection_params['database']}' created successfully")
            else:
                print(f"Database '{self.connection_params['database']}' already exists")

            cursor.close()
            conn.close()

        except psycopg2.Error as e:
            print(f"Error creating database: {e}")
            raise

    def drop_existing_tables(self):
        """Drop the application tables"""
        drop_sql = """
        DROP TABLE IF EXISTS entity_collections CASCADE;
        DROP TABLE IF EXISTS prosecutors CASCADE;
        DROP TABLE IF EXISTS app_users CASCADE;
        """

        try:
            conn = psycopg2.connect(**self.connection_params)
            cursor = conn.cursor()
            cursor.execute(drop_sql)
            conn.commit()
            print("Existing tables dropped successfully")
            cursor.close()
            conn.close()
        except psycopg2.Error as e:
            print(f"Note: Some tables may not have existed: {e}")

    def create_tables(self):
        """Create all tables and indexes"""
        create_tables_sql = """
        -- Accounts; email is the identity
        CREATE TABLE IF NOT EXISTS app_users (
            id VARCHAR(64) PRIMARY KEY,
            email VARCHAR(254) NOT NULL UNIQUE,
            display_name VARCHAR(200) NOT NULL DEFAULT '',
            role VARCHAR(20) NOT NULL DEFAULT 'user' CHECK (role IN ('user', 'admin')),
            password_hash VARCHAR(128) NOT NULL,
            password_salt VARCHAR(128) NOT NULL,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );

        -- Prosecutor reference list, one owner per row
        CREATE TABLE IF NOT EXISTS prosecutors (
            id VARCHAR(64) PRIMARY KEY,
            name VARCHAR(200) NOT NULL,
            title VARCHAR(200) NOT NULL,
            department VARCHAR(200),
            user_id VARCHAR(64) NOT NULL,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );

        -- Whole case/report collections per user, stored as JSON snapshots
        CREATE TABLE IF NOT EXISTS entity_collections (
            user_key VARCHAR(254) NOT NULL,
            collection VARCHAR(64) NOT NULL,
            payload JSONB NOT NULL DEFAULT '[]'::jsonb,
            written_at DOUBLE PRECISION NOT NULL DEFAULT 0,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            PRIMARY KEY (user_key, collection)
        );
        ALTER TABLE entity_collections ADD COLUMN IF NOT EXISTS written_at DOUBLE PRECISION NOT NULL DEFAULT 0;

        CREATE INDEX IF NOT EXISTS idx_prosecutors_user_name ON prosecutors(user_id, name);
        CREATE INDEX IF NOT EXISTS idx_app_users_email ON app_users(email);
        """

        try:
            conn = psycopg2.connect(**self.connection_params)
            cursor = conn.cursor()
            cursor.execute(create_tables_sql)
            conn.commit()
            cursor.close()
            conn.close()
            print("All tables and indexes created successfully")
        except psycopg2.Error as e:
            print(f"Error creating tables: {e}")
            raise

    def create_triggers(self):
        """Create triggers separately with proper error handling"""

        trigger_function_sql = """
        -- Create function for updating timestamps
        CREATE OR REPLACE FUNCTION update_updated_at_column()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = CURRENT_TIMESTAMP;
            RETURN NEW;
        END;
        $$ language 'plpgsql';
        """

        triggers = [
            "CREATE TRIGGER update_app_users_updated_at BEFORE UPDATE ON app_users FOR EACH ROW EXECUTE FUNCTION update_updated_at_column();",
            "CREATE TRIGGER update_prosecutors_updated_at BEFORE UPDATE ON prosecutors FOR EACH ROW EXECUTE FUNCTION update_updated_at_column();",
        ]

        try:
            conn = psycopg2.connect(**self.connection_params)
            conn.autocommit = True
            cursor = conn.cursor()

            cursor.execute(trigger_function_sql)

            for trigger in triggers:
                try:
                    cursor.execute(trigger)
                    print(f"Trigger created: {trigger.split()[2]}")
                except psycopg2.Error as e:
                    if "already exists" in str(e):
                        print(f"Trigger already exists: {trigger.split()[2]}")
                    else:
                        print(f"Error creating trigger: {e}")

            cursor.close()
            conn.close()
            print("Trigger setup completed")

        except psycopg2.Error as e:
            print(f"Error setting up triggers: {e}")
            # Don't raise - triggers are not critical for basic functionality

    def setup_database(self, drop_tables=False):
        """Complete database setup"""
        self.create_database_if_not_exists()

        if drop_tables:
            print("Dropping existing tables...")
            self.drop_existing_tables()

        self.create_tables()
        self.create_triggers()
        print("PostgreSQL database setup completed successfully!")

    def clear_all_data(self):
        """Remove every stored collection, prosecutor and account"""
        clear_sql = """
        TRUNCATE TABLE entity_collections CASCADE;
        TRUNCATE TABLE prosecutors CASCADE;
        TRUNCATE TABLE app_users CASCADE;
        """

        try:
            conn = psycopg2.connect(**self.connection_params)
            cursor = conn.cursor()
            cursor.execute(clear_sql)
            conn.commit()
            print("All data cleared successfully")
            cursor.close()
            conn.close()
        except psycopg2.Error as e:
            print(f"Error clearing data: {e}")
            raise

    def create_user(self, email, password, display_name="", role="user"):
        """Create an account that can sign in to the API"""
        password_hash, salt = hash_password(password)
        try:
            conn = psycopg2.connect(**self.connection_params)
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO app_users (id, email, display_name, role, password_hash, password_salt)
                VALUES (%s, %s, %s, %s, %s, %s)
                ON CONFLICT (email) DO NOTHING
                """,
                (uuid.uuid4().hex, email.strip().lower(), display_name, role, password_hash, salt),
            )
            created = cursor.rowcount == 1
            conn.commit()
            cursor.close()
            conn.close()
        except psycopg2.Error as e:
            print(f"Error creating user: {e}")
            raise

        if created:
            print(f"User '{email}' created")
        else:
            print(f"User '{email}' already exists")
        return created


if __name__ == "__main__":
    db_config = Config.get_database_config()
    db_setup = PostgreSQLSetup(
        host=db_config["host"],
        port=db_config["port"],
        database=db_config["database"],
        user=db_config["user"],
        password=db_config["password"],
    )

    # Check for command line arguments
    if len(sys.argv) > 1:
        if sys.argv[1] == "--reset":
            print("Resetting database...")
            db_setup.setup_database(drop_tables=True)
        elif sys.argv[1] == "--clear-data":
            print("Clearing all data...")
            db_setup.clear_all_data()
        elif sys.argv[1] == "--create-user" and len(sys.argv) >= 4:
            name = sys.argv[4] if len(sys.argv) > 4 else ""
            db_setup.create_user(sys.argv[2], sys.argv[3], display_name=name)
        else:
            print("Usage: python database_setup.py [--reset|--clear-data|--create-user EMAIL PASSWORD [NAME]]")
    else:
        db_setup.setup_database()
