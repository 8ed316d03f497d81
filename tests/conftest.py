import os
import tempfile

# Keep rotating log files out of the working tree while tests run.
os.environ.setdefault("MAPSCRAPER_LOG_DIR", tempfile.mkdtemp(prefix="mapscraper-logs-"))
