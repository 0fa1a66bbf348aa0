"""Debug log sink entry point."""

import logging

from log_relay.config import load_sink_config
from log_relay.sink import create_app, install_crash_hooks
from log_relay.store import LogStore

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def main():
    config = load_sink_config()
    store = LogStore(config.log_file)
    app = create_app(config, store)
    install_crash_hooks(store)

    logger.info("Debug server running on http://%s:%d", config.host, config.port)
    logger.info("Log file: %s", store.path)
    logger.info("Endpoints:")
    logger.info("  POST   /debug/log             - Send debug log")
    logger.info("  GET    /debug/logs?lines=100  - Get recent logs")
    logger.info("  DELETE /debug/logs            - Clear logs")
    logger.info("  GET    /debug/health          - Health check")

    store.write_record("info", {"message": "Debug server started", "port": config.port})
    app.run(host=config.host, port=config.port, debug=config.debug, use_reloader=False)


if __name__ == "__main__":
    main()
