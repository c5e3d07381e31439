"""
Settings for the MCP DB Server

Process-level settings read from the environment. Connection parameters
themselves are resolved by ConfigResolver; this module only holds the
knobs around them (retry budget, logging, strict TLS) and the names of
the variables the resolver reads.

A .env file in the working directory is merged into the environment on
import; variables that are already set win.
"""

import logging.config
import os

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

SERVER_NAME = "mcp-db-server"
SERVER_VERSION = "1.0.0"

# Environment variable names: (primary, PostgreSQL-convention alias)
ENV_HOST = ("DB_HOST", "POSTGRES_HOST")
ENV_PORT = ("DB_PORT", "POSTGRES_PORT")
ENV_USER = ("DB_USER", "POSTGRES_USER")
ENV_PASSWORD = ("DB_PASSWORD", "POSTGRES_PASSWORD")
ENV_DATABASE = ("DB_NAME", "POSTGRES_DB")
ENV_SSL_MODE = ("DB_SSL_MODE", "POSTGRES_SSL_MODE")
ENV_DATABASE_URL = "DATABASE_URL"
ENV_SSL_STRICT = "DB_SSL_STRICT"

CONFIG_FILE_NAME = "config.json"

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 5432
DEFAULT_USER = "postgres"
DEFAULT_PASSWORD = "postgres"
DEFAULT_DATABASE = "postgres"

# AWS RDS trust bundle
RDS_HOST_SUFFIX = ".rds.amazonaws.com"
RDS_BUNDLE_URL = "https://truststore.pki.rds.amazonaws.com/global/global-bundle.pem"
RDS_CERT_DIR_NAME = ".aws-certs"
RDS_CERT_FILE_NAME = "rds-global-bundle.pem"
CERT_MAX_AGE_DAYS = 30
CERT_DOWNLOAD_TIMEOUT = 30  # seconds

# Connection bootstrap
DB_CONNECT_ATTEMPTS = int(os.getenv("DB_CONNECT_ATTEMPTS", "3"))
DB_CONNECT_RETRY_DELAY = float(os.getenv("DB_CONNECT_RETRY_DELAY", "2"))

DEBUG = os.getenv("DEBUG", "False").lower() == "true"


def env_flag(value):
    """Interpret an environment string as a boolean flag"""
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


def build_logging_config(level=None, log_file=None):
    """
    Build the dictConfig for the server.

    Everything goes to stderr: stdout carries the JSON-RPC stream and must
    never see diagnostics.
    """
    if level is None:
        level = os.getenv("LOG_LEVEL") or ("DEBUG" if DEBUG else "INFO")
    level = level.upper()
    if log_file is None:
        log_file = os.getenv("MCP_LOG_FILE")

    handlers = {
        "console": {
            "level": level,
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stderr",
            "formatter": "simple",
        },
    }
    if log_file:
        handlers["file"] = {
            "level": "INFO",
            "class": "logging.FileHandler",
            "filename": log_file,
            "formatter": "verbose",
        }

    handler_names = list(handlers)
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "verbose": {
                "format": "{levelname} {asctime} {module} {process:d} {message}",
                "style": "{",
            },
            "simple": {
                "format": "{levelname} {name}: {message}",
                "style": "{",
            },
        },
        "handlers": handlers,
        "root": {
            "handlers": handler_names,
            "level": level,
        },
        "loggers": {
            "mcp_servers": {"handlers": handler_names, "level": level, "propagate": False},
            "db_config": {"handlers": handler_names, "level": level, "propagate": False},
            "security": {"handlers": handler_names, "level": level, "propagate": False},
            "urllib3": {"handlers": handler_names, "level": "WARNING", "propagate": False},
        },
    }


def configure_logging(level=None, log_file=None):
    """Apply the logging configuration"""
    logging.config.dictConfig(build_logging_config(level, log_file))
