import os
from dotenv import load_dotenv


def load_environment_config():
    """
    Load environment-specific configuration based on APP_ENV.

    Environments:
    - production: Uses .env.production
    - sit: Uses .env.sit
    - test: Uses .env.test
    - development: Uses .env (default)
    """
    env = os.getenv('APP_ENV', 'development').lower()

    env_files = {
        'production': '.env.production',
        'sit': '.env.sit',
        'test': '.env.test',
        'development': '.env',
    }

    env_file = env_files.get(env, '.env')

    if os.path.exists(env_file):
        load_dotenv(env_file)
        print(f"🔧 Loaded configuration from: {env_file}")
    else:
        # Fallback to default .env
        load_dotenv()
        if env != 'development':
            print(f"⚠️  Environment file {env_file} not found, using default .env")


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == 'true'


# Load environment-specific configuration
load_environment_config()

APP_ENV = os.getenv('APP_ENV', 'development').lower()

# Provider credentials
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
TAVILY_API_KEY = os.getenv("TAVILY_API_KEY", "")
USE_LLM = bool(OPENAI_API_KEY)

# Model configuration
ANALYSIS_MODEL = os.getenv("ANALYSIS_MODEL", "gpt-4o")
ANALYSIS_MODEL_MAX_TOKENS = int(os.getenv("ANALYSIS_MODEL_MAX_TOKENS", "4000"))
COMPRESSION_MODEL = os.getenv("COMPRESSION_MODEL", "gpt-4o-mini")
COMPRESSION_MODEL_MAX_TOKENS = int(os.getenv("COMPRESSION_MODEL_MAX_TOKENS", "2000"))
FINAL_REPORT_MODEL = os.getenv("FINAL_REPORT_MODEL", "gpt-4o")
FINAL_REPORT_MODEL_MAX_TOKENS = int(os.getenv("FINAL_REPORT_MODEL_MAX_TOKENS", "8000"))

# Analysis flow control
ALLOW_CLARIFICATION = _env_bool("ALLOW_CLARIFICATION", "true")
MAX_SPECIALIST_ITERATIONS = int(os.getenv("MAX_SPECIALIST_ITERATIONS", "3"))
MAX_CONCURRENT_SPECIALISTS = int(os.getenv("MAX_CONCURRENT_SPECIALISTS", "3"))
ENABLE_STATUS_UPDATES = _env_bool("ENABLE_STATUS_UPDATES", "true")

# Tool configuration
WEB_SEARCH_MAX_QUERIES = int(os.getenv("WEB_SEARCH_MAX_QUERIES", "5"))

# Maximum number of assistant->tool cycles inside one specialist before we force-stop it
MAX_REACT_TOOL_CALLS = int(os.getenv("MAX_REACT_TOOL_CALLS", "6"))

# Lightweight router/planner orchestrator
MAX_ORCHESTRATOR_STEPS = int(os.getenv("MAX_ORCHESTRATOR_STEPS", "8"))
TOOL_TIMEOUT_SECONDS = float(os.getenv("TOOL_TIMEOUT_SECONDS", "12"))
ROUTER_TIMEOUT_SECONDS = float(os.getenv("ROUTER_TIMEOUT_SECONDS", "2"))

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
ENABLE_PII_REDACTION = _env_bool("ENABLE_PII_REDACTION", "true")

# Application port configuration
APP_PORT = int(os.getenv("APP_PORT", "8091"))


# Parse CORS origins from comma-separated string
cors_origins_str = os.getenv("CORS_ORIGINS", "")
CORS_ORIGINS = [origin.strip() for origin in cors_origins_str.split(",") if origin.strip()]

CORS_ALLOW_CREDENTIALS = os.getenv("CORS_ALLOW_CREDENTIALS", "true").lower() == "true"

# Parse CORS methods
cors_methods_str = os.getenv("CORS_ALLOW_METHODS", "*")
CORS_ALLOW_METHODS = [method.strip() for method in cors_methods_str.split(",") if method.strip()] if cors_methods_str != "*" else ["*"]

# Parse CORS headers
cors_headers_str = os.getenv("CORS_ALLOW_HEADERS", "*")
CORS_ALLOW_HEADERS = [header.strip() for header in cors_headers_str.split(",") if header.strip()] if cors_headers_str != "*" else ["*"]

CORS_MAX_AGE = int(os.getenv("CORS_MAX_AGE", "600"))
