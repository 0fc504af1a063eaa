"""Ingestion runner entry point.

Indexes one local document for a bot with the configured embed and index
clients. Useful to seed a bot's knowledge without going through the upload
endpoint.

Usage:
    python -m services.ingestion.ingest_runner <path> <bot_id>
"""

import argparse
import asyncio
import sys

from shared.clients.ClientManager import ClientManager
from shared.exceptions import AppException
from shared.extract.TextExtractor import TextExtractor
from services.ingestion.IngestionService import IngestionService
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import setup_logging
from shared.models.bot import IngestionStatus


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Ingest a local document into a bot's vector index.")
    parser.add_argument("path", help="PDF, .txt or .md file to ingest")
    parser.add_argument("bot_id", help="Bot the document belongs to")
    return parser.parse_args(argv)


async def main(argv: list[str] | None = None) -> int:
    """Run ingestion once. Returns the process exit code."""
    args = parse_args(argv)
    logger = setup_logging()
    config = HelperConfig(logger=logger)

    try:
        embed_client = ClientManager(helper_config=config, client_type="embed").get_client()
        index_client = ClientManager(helper_config=config, client_type="index").get_client()
    except ValueError as e:
        logger.error("Missing required configuration: %s. Aborting.", e)
        return 2

    try:
        # embed and index client are both required, abort if either fails to boot
        try:
            await embed_client.boot()
            await index_client.boot()
            await index_client.do_prepare()
        except Exception as e:
            logger.error("Error booting clients: %s. Aborting.", e)
            return 1

        service = IngestionService(
            helper_config=config,
            embed_client=embed_client,
            index_client=index_client,
            extractor=TextExtractor(helper_config=config),
        )
        try:
            report = await service.do_ingest(args.path, args.bot_id)
        except AppException as e:
            logger.error("Ingestion of %s failed: %s", args.path, e.message)
            return 1

        logger.info(
            "Ingestion of %s finished: status=%s chunks=%d indexed=%d dropped=%d",
            args.path, report.status.value, report.chunks, report.indexed, report.dropped,
            color="green" if report.status == IngestionStatus.INDEXED else "yellow",
        )
        return 0 if report.status != IngestionStatus.FAILED else 1
    finally:
        await embed_client.close()
        await index_client.close()


def cli() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
