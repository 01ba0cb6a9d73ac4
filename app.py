"""
Signal Timing: HTTP API entry point.

Usage:
    python app.py
    uvicorn app:app --reload
"""

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI

from signal_timing.config import ConfigurationError, get_settings
from signal_timing.errors import TimingError
from signal_timing.logging_config import setup_logging

load_dotenv()
setup_logging(get_settings().log_level)

app = FastAPI(title="Signal Timing")

# Routes
from signal_timing.web.routes import (  # noqa: E402
    configuration_error_handler,
    router,
    timing_error_handler,
)

app.include_router(router)
app.add_exception_handler(TimingError, timing_error_handler)
app.add_exception_handler(ConfigurationError, configuration_error_handler)

if __name__ == "__main__":
    uvicorn.run("app:app", host="0.0.0.0", port=8000, reload=True)
