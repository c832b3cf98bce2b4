import argparse
import asyncio
import json
import logging
import time
from typing import List, Optional

from delivery.file_delivery import FileDelivery
from ingestion.normalize import SOURCES, normalize
from processing.digest import DigestBuilder
from processing.summarizer import SummaryGenerator, SummaryOptions
from services.config import load_config
from services.context import AppContext, create_context
from services.logging import setup_logging

logger = logging.getLogger(__name__)


async def import_posts(context: AppContext, user_id: str, source: str, path: str) -> int:
    with open(path, 'r', encoding='utf-8') as file:
        payload = json.load(file)

    posts = normalize(source, payload)
    logger.info(f"Normalized {len(posts)} {source} posts from {path}")
    return await context.database.store_posts(user_id, posts)


async def summarize_post(
    context: AppContext,
    user_id: str,
    post_id: str,
    refresh: bool = False,
    options: Optional[SummaryOptions] = None,
) -> str:
    post = await context.database.get_post(user_id, post_id)
    if post is None:
        raise LookupError(f"Post not found: {post_id}")

    generator = SummaryGenerator(context)
    return await generator.get_or_generate(post, user_id, refresh=refresh, options=options)


async def build_digest(context: AppContext, user_id: str, source: Optional[str] = None) -> Optional[str]:
    posts = await context.database.get_user_posts(user_id, source)
    if not posts:
        logger.info(f"No saved posts for user {user_id}")
        return None

    builder = DigestBuilder(SummaryGenerator(context))
    digest = await builder.build_and_store(posts, user_id)

    path = await FileDelivery(context.config.OUTPUT_DIR).deliver(user_id=user_id, digest=digest)
    logger.info(f"Digest written to {path}")
    return str(path)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Saved-posts digest')
    parser.add_argument('--config', default=None, help='Path to config.yml')

    sub = parser.add_subparsers(dest='command', required=True)

    sub.add_parser('init-db', help='Create database tables')

    imp = sub.add_parser('import', help='Store saved posts from a platform JSON dump')
    imp.add_argument('--user', required=True, help='User ID to act for')
    imp.add_argument('source', choices=SOURCES)
    imp.add_argument('path')

    summ = sub.add_parser('summarize', help='Summarize one stored post')
    summ.add_argument('--user', required=True, help='User ID to act for')
    summ.add_argument('post_id')
    summ.add_argument('--refresh', action='store_true',
                      help='Regenerate even if a completed summary exists')
    summ.add_argument('--max-length', type=int, default=None)
    summ.add_argument('--style', choices=['concise', 'detailed'], default=None)

    dig = sub.add_parser('digest', help='Build a digest from stored posts')
    dig.add_argument('--user', required=True, help='User ID to act for')
    dig.add_argument('--source', choices=SOURCES, default=None)

    return parser


async def main(argv: Optional[List[str]] = None) -> None:
    start_time = time.perf_counter()
    setup_logging()

    args = build_parser().parse_args(argv)
    config = load_config(args.config)
    context = await create_context(config)

    if args.command == 'init-db':
        logger.info(f"Database initialized at {config.DATABASE_PATH}")

    elif args.command == 'import':
        count = await import_posts(context, args.user, args.source, args.path)
        print(f"Stored {count} posts")

    elif args.command == 'summarize':
        options = None
        if args.max_length or args.style:
            options = SummaryOptions(
                max_length=args.max_length or config.SUMMARY_MAX_LENGTH,
                style=args.style or config.SUMMARY_STYLE,
            )
        print(await summarize_post(context, args.user, args.post_id, args.refresh, options))

    elif args.command == 'digest':
        path = await build_digest(context, args.user, args.source)
        print(path or "No posts to digest")

    logger.info(f"Total time: {time.perf_counter() - start_time:.2f}s")


def cli() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    cli()
