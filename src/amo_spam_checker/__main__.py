"""Entry point: python -m amo_spam_checker"""

import asyncio
import logging
import sys

from .classifier import SpamClassifier
from .clients.amocrm import AmoCRMClient
from .clients.spravportal import SpravPortalClient
from .config import Settings
from .exceptions import SpamCheckerError
from .models import AmoPipeline


def setup_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


async def check_number(settings: Settings, phone: str) -> None:
    async with SpravPortalClient(settings) as client:
        verdict = await SpamClassifier(settings, client).classify(phone)

    print(f"Phone:        +{verdict.phone}")
    print(f"Status:       {'SPAM' if verdict.is_spam else 'CLEAN'} ({verdict.action})")
    print(f"Spam score:   {verdict.spam_score}%")
    print(f"Category:     {verdict.category_name}")
    print(f"Reviews:      {verdict.reviews_count}")
    for label, value in (
        ("Organization", verdict.organization),
        ("Region", verdict.region),
        ("Operator", verdict.operator),
    ):
        if value:
            print(f"{label + ':':<14}{value}")


def find_spam_status(pipelines: list[AmoPipeline]) -> tuple[AmoPipeline, int, str] | None:
    """Return the first status whose name contains "спам", with its pipeline."""
    for pipeline in pipelines:
        for status in pipeline.embedded.statuses:
            if "спам" in status.name.lower():
                return pipeline, status.id, status.name
    return None


async def list_pipelines(settings: Settings) -> None:
    async with AmoCRMClient(settings) as crm:
        pipelines = await crm.get_pipelines()

    for pipeline in pipelines:
        print(f"Pipeline: {pipeline.name}")
        print(f"  AMOCRM_SPAM_PIPELINE_ID={pipeline.id}")
        print("  Statuses:")
        for status in pipeline.embedded.statuses:
            print(f"    {status.name}  (AMOCRM_SPAM_STATUS_ID={status.id})")
        print()

    found = find_spam_status(pipelines)
    if found is None:
        print('No status named "спам" found. Create one in an amoCRM pipeline.')
        return

    pipeline, status_id, status_name = found
    print(f'Found spam status "{status_name}" in pipeline "{pipeline.name}". Set:')
    print(f"  AMOCRM_SPAM_PIPELINE_ID={pipeline.id}")
    print(f"  AMOCRM_SPAM_STATUS_ID={status_id}")


def main() -> None:
    setup_logging()
    logger = logging.getLogger(__name__)

    if len(sys.argv) < 2:
        print("Usage: python -m amo_spam_checker <command> [args]")
        print()
        print("Commands:")
        print("  serve            Run the webhook server")
        print("  check <phone>    Check a number without updating amoCRM")
        print("  pipelines        List amoCRM pipelines and status ids")
        sys.exit(1)

    command = sys.argv[1]

    try:
        settings = Settings()
    except Exception as exc:
        logger.error("Configuration error: %s", exc)
        logger.error("Check the environment variables or the .env file. See .env.example")
        sys.exit(1)

    try:
        if command == "serve":
            from .api.server import run_server

            run_server()

        elif command == "check":
            if len(sys.argv) < 3:
                print("Usage: python -m amo_spam_checker check <phone>")
                sys.exit(1)
            asyncio.run(check_number(settings, sys.argv[2]))

        elif command == "pipelines":
            if not settings.amocrm_access_token:
                logger.error("AMOCRM_ACCESS_TOKEN is not set")
                sys.exit(1)
            asyncio.run(list_pipelines(settings))

        else:
            print(f"Unknown command: {command}")
            sys.exit(1)

    except SpamCheckerError as exc:
        logger.error("%s", exc)
        if getattr(exc, "status_code", None) == 401:
            logger.error("Authorization failed. Check AMOCRM_ACCESS_TOKEN.")
        sys.exit(1)


if __name__ == "__main__":
    main()
