# app.py
from flask import Flask, request, jsonify, send_from_directory
from flask_cors import CORS
import os
import logging
from logging.handlers import RotatingFileHandler
from typing import Optional

from database import mongo_client
from services import quote_client
from services.like_ledger import LikeLedger, LedgerUnavailableError
from services.stock_prices_service import StockPricesService, QuoteFetcher
from helper_functions import (
    InvalidStockRequest,
    client_id_from_request,
    parse_like_flag,
    parse_stock_prices_request,
)
from shared.contracts import ApiError

PORT = int(os.getenv("PORT", 3000))
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
BASE_DIR = os.path.dirname(os.path.abspath(__file__))

CONTENT_SECURITY_POLICY = "; ".join([
    "default-src 'self'",
    "script-src 'self' https://code.jquery.com",
    "style-src 'self'",
    f"connect-src 'self' {quote_client.QUOTE_API_URL}",
    "img-src 'self' data:",
])

# --- 1. Logging Setup ---
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FILE_NAME = "stock_price_checker.log"

# Loggers of the modules behind /api/stock-prices; they share the app's handlers
SERVICE_LOGGERS = (
    "services.quote_client",
    "services.like_ledger",
    "services.stock_prices_service",
    "helper_functions",
)

def _build_log_handlers(log_level):
    """Console handler, plus a rotating file handler when LOG_DIR is set."""
    formatter = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    handlers = [logging.StreamHandler()]
    log_directory = os.environ.get("LOG_DIR")
    if log_directory:
        os.makedirs(log_directory, exist_ok=True)
        handlers.append(RotatingFileHandler(
            os.path.join(log_directory, LOG_FILE_NAME),
            maxBytes=5 * 1024 * 1024,
            backupCount=5,
        ))
    for h in handlers:
        h.setLevel(log_level)
        h.setFormatter(formatter)
    return handlers

def setup_logging(app):
    """Routes app.logger and the service module loggers through one set of handlers."""
    log_level = getattr(logging, os.environ.get("LOG_LEVEL", "INFO").upper(), logging.INFO)
    handlers = _build_log_handlers(log_level)

    for target in [app.logger] + [logging.getLogger(name) for name in SERVICE_LOGGERS]:
        target.setLevel(log_level)
        target.propagate = False
        # create_app may run more than once per process (tests)
        for h in list(target.handlers):
            target.removeHandler(h)
        for h in handlers:
            target.addHandler(h)

    # keep werkzeug request lines off the root logger
    werk = logging.getLogger("werkzeug")
    werk.propagate = False

    app.logger.info("Stock price checker logging initialized.")
# --- End of Logging Setup ---


def create_app(ledger: Optional[LikeLedger] = None, quote_fetcher: Optional[QuoteFetcher] = None) -> Flask:
    """
    Builds the Flask app around an explicitly constructed like ledger.

    Args:
        ledger: LikeLedger bound to an open stocks collection. Required for
            /api/stock-prices; the caller owns the underlying Mongo client.
        quote_fetcher: Callable symbol -> QuoteResult, defaults to the
            upstream quote proxy client.
    """
    app = Flask(__name__, static_folder=None)
    setup_logging(app)
    CORS(app, resources={r"/*": {"origins": CORS_ORIGINS}})

    app.extensions["stock_prices_service"] = (
        StockPricesService(ledger, quote_fetcher or quote_client.fetch_quote)
        if ledger is not None else None
    )

    @app.after_request
    def set_security_headers(response):
        response.headers["Content-Security-Policy"] = CONTENT_SECURITY_POLICY
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-DNS-Prefetch-Control"] = "off"
        response.headers["Referrer-Policy"] = "same-origin"
        return response

    @app.route('/', methods=['GET'])
    def index():
        return send_from_directory(os.path.join(BASE_DIR, "views"), "index.html")

    @app.route('/public/<path:filename>', methods=['GET'])
    def public_files(filename):
        return send_from_directory(os.path.join(BASE_DIR, "public"), filename)

    @app.route('/api/stock-prices', methods=['GET'])
    @app.route('/api/stock-prices/', methods=['GET'])
    def get_stock_prices():
        """
        Returns the price and likes of one stock, or the prices and relative
        likes of two stocks. Upstream quote errors are reported inside a 200 body.
        """
        service = app.extensions.get("stock_prices_service")
        if service is None:
            app.logger.error("/api/stock-prices called without a configured like ledger")
            return jsonify(ApiError(error="Like storage is unavailable").model_dump()), 503

        try:
            stock_request = parse_stock_prices_request(request.args.getlist("stock"))
        except InvalidStockRequest as e:
            app.logger.warning(f"Rejected /api/stock-prices query {dict(request.args)}: {e}")
            return jsonify(ApiError(error=str(e)).model_dump()), 400

        like = parse_like_flag(request.args.get("like"))
        client_id = client_id_from_request(request.headers.get("X-Forwarded-For"), request.remote_addr)

        try:
            body = service.lookup(stock_request, like, client_id)
        except LedgerUnavailableError as e:
            app.logger.error(f"Like ledger unavailable: {e}", exc_info=True)
            return jsonify(ApiError(error="Like storage is unavailable").model_dump()), 503
        except Exception as e:
            app.logger.error(f"An unexpected error occurred in /api/stock-prices: {e}", exc_info=True)
            return jsonify(ApiError(error="An internal server error occurred").model_dump()), 500

        return jsonify(body), 200

    @app.route('/health', methods=['GET'])
    def health_check():
        """Standard health check endpoint."""
        return jsonify({"status": "healthy"}), 200

    @app.errorhandler(404)
    def not_found(_error):
        return "Not Found", 404, {"Content-Type": "text/plain; charset=utf-8"}

    return app


if __name__ == '__main__':
    client, db = mongo_client.connect()
    try:
        mongo_client.initialize_indexes(db)
        app = create_app(LikeLedger(mongo_client.get_stocks_collection(db)))
        app.logger.info(f"MongoDB ready; listening on port {PORT}")
        app.run(host="0.0.0.0", port=PORT)
    finally:
        client.close()
