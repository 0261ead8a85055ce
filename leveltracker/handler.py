"""
Entrypoint for the level tracker

Invoked by an external scheduler, either as a serverless function or from the
command line (`python -m leveltracker.handler`).
"""

import asyncio
import logging
import sys
from typing import Any, Dict, Optional

from leveltracker.config.settings import settings
from leveltracker.jobs.update_levels import run_level_update

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def lambda_handler(event: Optional[Dict[str, Any]], context: Any) -> Dict[str, Any]:
    """
    Serverless entrypoint for one level update run.

    Optional event keys override the configured paths:
    - {"config_path": "characters.json"}
    - {"snapshot_path": "docs/levels.json"}

    Returns:
        Dictionary with statusCode and a short run summary
    """
    payload = event or {}
    logger.info("Level update invoked")

    try:
        snapshot = asyncio.run(
            run_level_update(
                config_path=payload.get("config_path"),
                snapshot_path=payload.get("snapshot_path"),
            )
        )
    except Exception as e:
        logger.error(f"Level update failed: {e}", exc_info=True)
        return {
            "statusCode": 500,
            "error": str(e),
        }

    results = snapshot["results"]
    summary = {
        "generated_at": snapshot["generated_at"],
        "characters": len(results),
        "failed": sum(1 for record in results if not record["ok"]),
    }
    logger.info(f"Level update completed: {summary}")
    return {
        "statusCode": 200,
        "result": summary,
    }


def main() -> int:
    response = lambda_handler({}, None)
    if response["statusCode"] != 200:
        return 1
    print(f"Wrote {settings.SNAPSHOT_PATH}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
