"""
Supabase schema setup for the credits tables.

This script can set up the database schema in two modes:
1. Incremental (default): Creates tables/indexes/RLS if they don't exist
2. From scratch: Drops the credits tables and recreates them

Usage:
    # Incremental setup (safe, won't delete existing data)
    python -m styling_backend.database.setup_schema

    # From scratch setup (WARNING: Deletes all credit data!)
    python -m styling_backend.database.setup_schema --from-scratch
"""

import os
import sys
import argparse

from dotenv import load_dotenv
import psycopg2

from ..config import get_settings

# Load environment variables
load_dotenv()

# Database connection parameters
USER = os.getenv("user")
PASSWORD = os.getenv("password")
HOST = os.getenv("host")
PORT = os.getenv("port")
DBNAME = os.getenv("dbname")


def get_db_connection():
    """Connect to Supabase database."""
    try:
        connection = psycopg2.connect(
            user=USER,
            password=PASSWORD,
            host=HOST,
            port=PORT,
            dbname=DBNAME
        )
        connection.autocommit = True
        print("[OK] Connected to database")
        return connection
    except Exception as e:
        print(f"[ERROR] Failed to connect: {e}")
        return None


def build_table_statements(accounts_table, transactions_table, starting_credits, from_scratch=False):
    """Return the CREATE TABLE statements for the two credits tables."""
    create_stmt = "CREATE TABLE" if from_scratch else "CREATE TABLE IF NOT EXISTS"
    return [
        f"""
            {create_stmt} public.{accounts_table} (
                user_id TEXT PRIMARY KEY,
                credits INTEGER NOT NULL DEFAULT {int(starting_credits)} CHECK (credits >= 0),
                updated_at TIMESTAMPTZ DEFAULT NOW() NOT NULL
            );
        """,
        f"""
            {create_stmt} public.{transactions_table} (
                id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
                user_id TEXT NOT NULL,
                delta INTEGER NOT NULL,
                reason TEXT NOT NULL,
                metadata JSONB NOT NULL DEFAULT '{{}}'::jsonb,
                created_at TIMESTAMPTZ DEFAULT NOW() NOT NULL
            );
        """,
    ]


def drop_all_objects(conn, accounts_table, transactions_table):
    """Drop the credits tables for a fresh setup."""
    try:
        cursor = conn.cursor()

        print("\n[WARNING] Dropping credits tables...")
        cursor.execute(f"DROP TABLE IF EXISTS public.{transactions_table} CASCADE;")
        cursor.execute(f"DROP TABLE IF EXISTS public.{accounts_table} CASCADE;")
        print("[OK] Dropped tables")

        cursor.close()
        return True
    except Exception as e:
        print(f"[ERROR] Error dropping objects: {e}")
        return False


def create_tables(conn, accounts_table, transactions_table, starting_credits, from_scratch=False):
    """Create the account and transaction tables."""
    try:
        cursor = conn.cursor()
        for statement in build_table_statements(accounts_table, transactions_table, starting_credits, from_scratch):
            cursor.execute(statement)
        print(f"[OK] Created {accounts_table} and {transactions_table} tables")
        cursor.close()
        return True
    except Exception as e:
        print(f"[ERROR] Error creating tables: {e}")
        return False


def create_indexes(conn, transactions_table, from_scratch=False):
    """Create indexes for history queries."""
    try:
        cursor = conn.cursor()

        indexes = [
            (f"idx_{transactions_table}_user_id", "user_id"),
            (f"idx_{transactions_table}_created_at", "created_at DESC"),
        ]

        for index_name, column in indexes:
            if from_scratch:
                cursor.execute(f"CREATE INDEX {index_name} ON public.{transactions_table}({column});")
            else:
                cursor.execute(f"CREATE INDEX IF NOT EXISTS {index_name} ON public.{transactions_table}({column});")
            print(f"[OK] Created index {index_name}")

        cursor.close()
        return True
    except Exception as e:
        print(f"[ERROR] Error creating indexes: {e}")
        return False


def enable_rls(conn, tables):
    """Enable Row Level Security; only the service role key can touch credits."""
    try:
        cursor = conn.cursor()
        for table in tables:
            cursor.execute(f"ALTER TABLE public.{table} ENABLE ROW LEVEL SECURITY;")
            print(f"[OK] Enabled RLS on {table}")
        cursor.close()
        return True
    except Exception as e:
        print(f"[ERROR] Error enabling RLS: {e}")
        return False


def setup_schema(from_scratch=False):
    """
    Main function to set up the credits schema.

    Args:
        from_scratch: If True, drops the credits tables before creating them
    """
    settings = get_settings()
    accounts_table = settings.credits_table
    transactions_table = settings.credit_transactions_table

    if from_scratch:
        print("=" * 70)
        print("WARNING: FROM-SCRATCH MODE")
        print("=" * 70)
        print("This will DELETE ALL credit balances and transactions!")
        print("=" * 70)
        response = input("Are you sure you want to continue? (yes/no): ")
        if response.lower() != "yes":
            print("Aborted.")
            return False
        print("\nStarting credits schema setup from scratch...\n")
    else:
        print("Starting credits schema setup (incremental mode)...\n")

    conn = get_db_connection()
    if not conn:
        return False

    try:
        success = True

        if from_scratch:
            success &= drop_all_objects(conn, accounts_table, transactions_table)
            print()

        success &= create_tables(
            conn,
            accounts_table,
            transactions_table,
            settings.default_starting_credits,
            from_scratch=from_scratch
        )
        success &= create_indexes(conn, transactions_table, from_scratch=from_scratch)
        success &= enable_rls(conn, [accounts_table, transactions_table])

        if success:
            print("\n" + "=" * 70)
            print("[SUCCESS] Schema setup completed successfully!")
            print("=" * 70)
        else:
            print("\n[ERROR] Schema setup completed with errors")

        return success
    finally:
        conn.close()
        print("\nConnection closed.")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Set up Supabase credits schema")
    parser.add_argument(
        "--from-scratch",
        action="store_true",
        help="Drop the credits tables and recreate them (WARNING: Deletes all data!)"
    )
    args = parser.parse_args()

    success = setup_schema(from_scratch=args.from_scratch)
    sys.exit(0 if success else 1)
