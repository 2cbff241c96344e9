"""Run the dashboard API: `python -m guardian`."""

import uvicorn

from guardian.config import get_config, print_config_summary, validate_config


def main() -> None:
    validate_config()
    config = get_config()
    if config.debug:
        print_config_summary()

    uvicorn.run(
        "guardian.api.app:create_app",
        factory=True,
        host=config.api.host,
        port=config.api.port,
        reload=config.api.reload,
        log_level=config.logging.level.lower(),
    )


if __name__ == "__main__":
    main()
