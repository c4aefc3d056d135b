import logging

from styling_backend.database.setup_schema import build_table_statements
from styling_backend.server.logging_config import SafeStreamHandler, setup_logging


def test_table_statements_use_configured_names():
    accounts, transactions = build_table_statements("user_credits", "credit_transactions", 5)

    assert "CREATE TABLE IF NOT EXISTS public.user_credits" in accounts
    assert "user_id TEXT PRIMARY KEY" in accounts
    assert "DEFAULT 5 CHECK (credits >= 0)" in accounts
    assert "CREATE TABLE IF NOT EXISTS public.credit_transactions" in transactions
    assert "metadata JSONB NOT NULL DEFAULT '{}'::jsonb" in transactions


def test_from_scratch_statements():
    statements = build_table_statements("a", "b", 0, from_scratch=True)
    assert all("IF NOT EXISTS" not in s for s in statements)


def test_setup_logging_creates_log_dir(tmp_path):
    log_file = setup_logging("debug", logs_dir=str(tmp_path / "logs"))
    assert log_file.parent.is_dir()
    assert log_file.name == "app.log"


def test_safe_stream_handler_writes_unicode():
    class Stream:
        def __init__(self):
            self.parts = []

        def write(self, text):
            self.parts.append(text)

        def flush(self):
            pass

    stream = Stream()
    handler = SafeStreamHandler(stream)
    handler.setFormatter(logging.Formatter("%(message)s"))
    handler.emit(logging.LogRecord("t", logging.INFO, __file__, 1, "tenue élégante", None, None))

    assert "".join(stream.parts) == "tenue élégante\n"
