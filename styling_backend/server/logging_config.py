import logging
import sys
from pathlib import Path


class SafeStreamHandler(logging.StreamHandler):
    """Stream handler that safely handles Unicode encoding errors cross-platform (Windows, Linux, macOS)."""
    def emit(self, record):
        try:
            msg = self.format(record)
            stream = self.stream
            # Try to write with UTF-8, fallback to error handling if needed
            try:
                if hasattr(stream, 'buffer'):
                    # For stdout/stderr, use buffer with UTF-8
                    stream.buffer.write(msg.encode('utf-8', errors='replace'))
                    stream.buffer.write(self.terminator.encode('utf-8'))
                    stream.buffer.flush()
                else:
                    stream.write(msg)
                    stream.write(self.terminator)
                    stream.flush()
            except (UnicodeEncodeError, AttributeError):
                safe_msg = msg.encode('ascii', errors='replace').decode('ascii')
                stream.write(safe_msg)
                stream.write(self.terminator)
                stream.flush()
        except Exception:
            self.handleError(record)


def setup_logging(level: str = "INFO", logs_dir: str = "logs") -> Path:
    """Configure root logging to logs/app.log and stdout. Returns the log file path."""
    logs_path = Path(logs_dir)
    logs_path.mkdir(exist_ok=True)
    log_file = logs_path / "app.log"

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file, encoding='utf-8'),
            SafeStreamHandler(sys.stdout)
        ]
    )

    # Supabase's HTTP stack logs every request at INFO
    logging.getLogger('httpx').setLevel(logging.WARNING)
    logging.getLogger('hpack').setLevel(logging.WARNING)

    return log_file
