#!/usr/bin/env python3
"""
sheetfeed - web service launcher
"""

from loguru import logger

from sheetfeed.web.main import run


def main() -> None:
    logger.info("Starting sheetfeed web service...")
    run()


if __name__ == "__main__":
    main()
