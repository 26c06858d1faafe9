#!/usr/bin/env python3
"""
COD Order Desk - API Launcher
Validates configuration, then serves the REST API with uvicorn.
"""
import io
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent

# Fix encoding for Windows
if sys.stdout.encoding != 'utf-8':
    sys.stdout = io.TextIOWrapper(sys.stdout.buffer, encoding='utf-8', errors='replace')
    sys.stderr = io.TextIOWrapper(sys.stderr.buffer, encoding='utf-8', errors='replace')


def main():
    """Main entry point"""
    try:
        import uvicorn

        from order_desk import config
        from order_desk.api.main import create_app
        from order_desk.utils.logger import get_logger

        print("\n" + "=" * 80)
        print("COD ORDER DESK")
        print("=" * 80)
        print(f"Project Root: {PROJECT_ROOT}")
        print(f"Environment: {config.RUNTIME_ENVIRONMENT}")
        print("=" * 80 + "\n")

        config.validate_config()
        print("[OK] Configuration validated")

        logger = get_logger(log_level=config.LOG_LEVEL)
        logger.info(
            f"REST API starting on http://{config.API_HOST}:{config.API_PORT} (Swagger: /docs)",
            component="Main",
        )

        uvicorn.run(create_app(), host=config.API_HOST, port=config.API_PORT, log_level="info")

    except Exception as e:
        print(f"\n[FAIL] Failed to start API: {str(e)}")
        if 'logger' in locals():
            logger.error(f"API startup failed: {str(e)}", component="Main", exc_info=True)
        import traceback
        traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
