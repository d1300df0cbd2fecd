from flask import Flask, request
from flask_wtf.csrf import CSRFProtect, CSRFError
from pathlib import Path
import os
import secrets
from dotenv import load_dotenv
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix

load_dotenv()

from logging_helper import LoggingHelper, LogType, DEFAULT_DATA_DIR

# Get logger instance
logger = LoggingHelper.get_logger(LogType.MAIN)
from constants import DEFAULT_PAGE_SIZE_CHOICES, FALSE_VALUES
from database import get_database
from error_handler import validate_environment_variable
from helpers.response_helpers import error_response, success_response
from routes.table_routes import bp as table_api_bp, init_table_routes


app = Flask(__name__)

# ============================================================================
# FLASK CONFIGURATION
# ============================================================================

# SECURITY: Generate or load persistent secret key for session/CSRF protection
def _get_or_create_secret_key() -> str:
    """Get secret key from env, file, or generate new one."""
    env_key = os.environ.get('FLASK_SECRET_KEY')
    if env_key:
        return env_key

    secret_file = Path(os.getenv('TICKET_DESK_DATA_DIR', DEFAULT_DATA_DIR)) / 'flask_secret.key'
    try:
        if secret_file.exists():
            with open(secret_file, 'r') as f:
                return f.read().strip()

        new_key = secrets.token_hex(32)
        # Save with secure permissions (600 - owner read/write only)
        secret_file.parent.mkdir(parents=True, exist_ok=True)
        old_umask = os.umask(0o077)
        try:
            with open(secret_file, 'w') as f:
                f.write(new_key)
            os.chmod(secret_file, 0o600)
            logger.info("Generated and persisted new Flask secret key")
        finally:
            os.umask(old_umask)
        return new_key
    except Exception as e:
        logger.warning(f"Failed to persist secret key: {e}. Using session-only key.")
        return secrets.token_hex(32)


def _parse_page_sizes(raw: str) -> tuple:
    """Parse TICKET_DESK_PAGE_SIZES, e.g. '5,10,20'."""
    return tuple(int(part) for part in raw.split(',') if part.strip())


app.config['SECRET_KEY'] = _get_or_create_secret_key()
app.config['WTF_CSRF_SSL_STRICT'] = False

# SECURITY: Enable CSRF protection for all POST/PUT/DELETE requests
csrf = CSRFProtect(app)

PAGE_SIZE_CHOICES = validate_environment_variable(
    'TICKET_DESK_PAGE_SIZES',
    default=DEFAULT_PAGE_SIZE_CHOICES,
    converter=_parse_page_sizes,
    validator=lambda sizes: bool(sizes) and all(size > 0 for size in sizes)
)

SEED_SAMPLES = validate_environment_variable(
    'TICKET_DESK_SEED_SAMPLES',
    default=True,
    converter=lambda value: value.strip().lower() not in FALSE_VALUES
)


@app.errorhandler(CSRFError)
def handle_csrf_error(e):
    """Handle CSRF validation errors with helpful message."""
    logger.warning(f"CSRF validation failed: {e.description}")
    return error_response('CSRF validation failed', 400, {'message': e.description})

# ============================================================================
# REQUEST LOGGING AND SECURITY HEADERS
# ============================================================================

@app.before_request
def log_request_info():
    """Log incoming requests."""
    logger.debug(f"INCOMING REQUEST: {request.method} {request.path}")


@app.after_request
def add_response_headers(response):
    """Log outgoing responses and add security headers."""
    logger.debug(f"OUTGOING RESPONSE: {request.method} {request.path} -> {response.status_code}")

    response.headers['X-Frame-Options'] = 'SAMEORIGIN'
    response.headers['X-Content-Type-Options'] = 'nosniff'
    response.headers['Referrer-Policy'] = 'strict-origin-when-cross-origin'

    # API responses reflect live view state - never cache
    response.headers['Cache-Control'] = 'no-cache, no-store, must-revalidate'
    response.headers['Pragma'] = 'no-cache'
    response.headers['Expires'] = '0'
    return response

# ============================================================================
# ERROR HANDLERS
# ============================================================================

@app.errorhandler(Exception)
def handle_exception(e):
    """Catch-all error handler - returns JSON without exposing details."""
    if isinstance(e, HTTPException):
        return error_response(e.name, e.code)

    LoggingHelper.log_error_with_trace(f"Unhandled exception on {request.path}", e)

    debug_mode = os.getenv('DEBUG', 'false').lower() == 'true'
    if debug_mode:
        return error_response(str(e), 500, {'type': type(e).__name__})
    return error_response('Internal server error', 500)


@app.errorhandler(400)
def bad_request_error(e):
    """Handle 400 Bad Request errors."""
    logger.warning(f"Bad request on {request.path}: {e}")
    return error_response('Bad request', 400)


@app.errorhandler(404)
def not_found_error(e):
    """Handle 404 Not Found errors."""
    logger.debug(f"Not found: {request.path}")
    return error_response('Not found', 404)


@app.errorhandler(405)
def method_not_allowed_error(e):
    """Handle 405 Method Not Allowed errors."""
    return error_response('Method not allowed', 405)

# ============================================================================
# DATABASE INITIALIZATION
# ============================================================================

try:
    db = get_database()
except Exception as e:
    LoggingHelper.log_error_with_trace("CRITICAL: Failed to initialize database", e)
    logger.critical("Application cannot start without database. Exiting.")
    raise SystemExit(1)

if SEED_SAMPLES:
    db.seed_sample_tickets()

app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

# ============================================================================
# BLUEPRINT REGISTRATION
# ============================================================================

init_table_routes(db, PAGE_SIZE_CHOICES)
app.register_blueprint(table_api_bp)

# JSON API called with fetch(); exempt from form CSRF tokens
csrf.exempt(table_api_bp)


@app.route('/health')
def health():
    """Liveness check with the ticket count."""
    return success_response({'tickets': db.count_tickets()})


logger.info("Ticket Desk application initialized and ready")

# Only run the development server if executed directly (not via WSGI)
if __name__ == '__main__':
    host = os.getenv('HOST', '127.0.0.1')
    port = int(os.getenv('PORT', '21812'))

    if host == '0.0.0.0':
        logger.warning("Binding to 0.0.0.0 exposes API to network. Use 127.0.0.1 for production security.")

    logger.info(f"Starting Flask development server on {host}:{port}")
    logger.warning("Using Flask development server. For production, use a WSGI server like Gunicorn.")

    try:
        app.run(host=host, port=port, debug=False, threaded=True)
    except Exception as e:
        LoggingHelper.log_error_with_trace("Flask failed to start", e)
        raise
