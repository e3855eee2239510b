"""CLI entrypoint for glossary extraction.

Subcommands:
  extract  run extraction on a local file and write JSON
  ingest   store + register a file, process it in the background, wait for it
  status   show the stored processing status of an upload
  chat     ask a question against the stored glossary and reports
  sessions list, create, rename or delete chat sessions and show their messages
"""

import argparse
import asyncio
import json
import logging
import mimetypes
import os
import sys
import warnings
from pathlib import Path

from glossary_extractor.core.config import (
    LLM_MODEL,
    DatabaseConfig,
    StorageConfig,
    api_key_env_var,
)
from glossary_extractor.pydantic_models.glossary_models import RunUsage

# Suppress LiteLLM's direct prints (must be before import)
os.environ["LITELLM_LOG"] = "ERROR"

warnings.filterwarnings("ignore", message="Pydantic serializer warnings")
warnings.filterwarnings("ignore", category=ResourceWarning)

# Suppress noisy loggers (HTTP clients, LiteLLM internals)
for logger_name in ["httpx", "httpcore", "litellm", "LiteLLM", "aiohttp"]:
    logging.getLogger(logger_name).setLevel(logging.ERROR)


DEFAULT_USER = "local"


def _guess_mimetype(path: Path) -> str:
    return mimetypes.guess_type(path.name)[0] or "application/octet-stream"


def format_usage(usage: RunUsage) -> str:
    """Human-readable usage block for one run."""
    lines = [
        f"Model calls: {usage.calls}",
        f"Tokens: {usage.total_tokens:,} ({usage.prompt_tokens:,} in, {usage.completion_tokens:,} out)",
        f"Estimated cost: ${usage.cost_usd:.4f}",
    ]
    for purpose, totals in sorted(usage.by_purpose.items()):
        lines.append(f"  {purpose}: {totals.calls} calls, {totals.total_tokens:,} tokens, ${totals.cost_usd:.4f}")
    return "\n".join(lines)


def _check_api_key() -> bool:
    env_var = api_key_env_var(LLM_MODEL)
    if os.environ.get(env_var):
        return True
    print(f"Error: {env_var} not set (model: {LLM_MODEL})")
    print(f"Set it in .env or export {env_var}=...")
    return False


async def extract(
    file_path: str,
    dataset_id: str | None = None,
    business_context: str | None = None,
    mode: str = "comprehensive",
    output_dir: str = "outputs",
    verbose: bool = False,
) -> dict | None:
    """Run extraction on one local file and write the result as JSON.

    Returns:
        Result dict, or None on failure.
    """
    from glossary_extractor.core.file_processor import FileProcessor
    from glossary_extractor.core.llm_client import ExtractionClient
    from glossary_extractor.core.pipeline_logger import get_logger
    from glossary_extractor.core.usage_tracker import UsageTracker
    from glossary_extractor.orchestrator import GlossaryExtractor
    from glossary_extractor.pydantic_models.glossary_models import FileMetadata

    path = Path(file_path)
    if not path.exists():
        print(f"Error: File not found: {path}")
        return None
    if not _check_api_key():
        return None

    output_dir = Path(output_dir)
    json_dir = output_dir / "json"
    json_dir.mkdir(parents=True, exist_ok=True)
    run_logger = get_logger(verbose=verbose, log_dir=output_dir / "logs")

    extractor = GlossaryExtractor(
        client=ExtractionClient(usage_tracker=UsageTracker()),
        file_processor=FileProcessor(),
    )

    data = path.read_bytes()
    metadata = FileMetadata(filename=path.name, mimetype=_guess_mimetype(path), size=len(data))
    dataset_id = dataset_id or path.stem

    run_logger.start_run(path.name)
    try:
        run_logger.step("extract", f"{metadata.mimetype}, mode={mode}")
        result = await extractor.extract_from_file(
            data, metadata, dataset_id, business_context=business_context, extraction_mode=mode
        )
        run_logger.step_result(
            "Extraction finished",
            terms=len(result.terms),
            rules=len(result.rules),
            columns=len(result.column_preview),
        )
        for warning in result.warnings:
            run_logger.warning(warning)
    except Exception as e:
        run_logger.error("Extraction failed", exc=e, file=path.name)
        run_logger.end_run(success=False)
        return None

    result_dict = result.model_dump(mode="json")
    result_dict["dataset_id"] = dataset_id

    output_file = json_dir / f"{path.stem}.json"
    with open(output_file, "w", encoding="utf-8") as f:
        json.dump(result_dict, f, indent=2, ensure_ascii=False)
    print(f"\n[OUTPUT] {output_file}")

    if result.usage.calls:
        print(f"\n{format_usage(result.usage)}")

    run_logger.end_run(success=True, stats={"terms": len(result.terms), "rules": len(result.rules)})
    return result_dict


async def ingest(file_path: str, db_path: str, storage_root: str, verbose: bool = False) -> dict | None:
    """Accept a local file as an upload and wait for background processing."""
    from glossary_extractor.background import BackgroundGlossaryProcessor
    from glossary_extractor.core.pipeline_logger import get_logger
    from glossary_extractor.core.repository import SQLiteGlossaryRepository
    from glossary_extractor.core.storage import LocalObjectStorage
    from glossary_extractor.uploads import UploadService

    path = Path(file_path)
    if not path.exists():
        print(f"Error: File not found: {path}")
        return None
    if not _check_api_key():
        return None

    get_logger(verbose=verbose)
    repository = SQLiteGlossaryRepository(db_path)
    try:
        await repository.ensure_schema()
        storage = LocalObjectStorage(storage_root)
        processor = BackgroundGlossaryProcessor(repository, storage)
        service = UploadService(repository, storage, processor)

        receipt = await service.accept_upload(path.read_bytes(), path.name, _guess_mimetype(path))
        print(f"Accepted {receipt.filename} as {receipt.file_id} ({receipt.storage_path})")
        await receipt.task

        status = await processor.get_processing_status(receipt.file_id)
        status_dict = {"file_id": receipt.file_id, **status.model_dump(mode="json")}
        print(json.dumps(status_dict, indent=2))
        return status_dict
    finally:
        repository.close()


async def status(file_id: str, db_path: str) -> dict | None:
    from glossary_extractor.core.repository import SQLiteGlossaryRepository

    repository = SQLiteGlossaryRepository(db_path)
    try:
        await repository.ensure_schema()
        record = await repository.get_status(file_id)
    finally:
        repository.close()

    if record is None:
        print(f"Error: No upload with id {file_id}")
        return None
    record_dict = record.model_dump(mode="json")
    print(json.dumps(record_dict, indent=2))
    return record_dict


async def chat(
    message: str,
    db_path: str,
    dataset_id: str | None = None,
    session_id: str | None = None,
    user_id: str = DEFAULT_USER,
) -> dict | None:
    """Answer one message; with a session the exchange is stored in it."""
    from glossary_extractor.chat import GlossaryChat
    from glossary_extractor.core.errors import GlossaryExtractionError
    from glossary_extractor.core.repository import SQLiteGlossaryRepository

    if not _check_api_key():
        return None

    repository = SQLiteGlossaryRepository(db_path)
    try:
        await repository.ensure_schema()
        assistant = GlossaryChat(repository)
        if session_id:
            exchange = await assistant.send_message(session_id, user_id, message, dataset_id=dataset_id)
            reply, result = exchange.reply, exchange.to_dict()
        else:
            reply = await assistant.respond(message, dataset_id=dataset_id)
            result = reply.to_dict()
    except GlossaryExtractionError as e:
        print(f"Error: {e}")
        return None
    finally:
        repository.close()

    print(reply.answer)
    return result


async def sessions(
    action: str,
    db_path: str,
    user_id: str = DEFAULT_USER,
    session_id: str | None = None,
    title: str | None = None,
) -> dict | list | None:
    """Manage stored chat sessions of one user."""
    from glossary_extractor.chat import GlossaryChat
    from glossary_extractor.core.errors import GlossaryExtractionError
    from glossary_extractor.core.repository import SQLiteGlossaryRepository

    repository = SQLiteGlossaryRepository(db_path)
    try:
        await repository.ensure_schema()
        assistant = GlossaryChat(repository)
        if action == "list":
            result = [s.model_dump(mode="json") for s in await assistant.list_sessions(user_id)]
        elif action == "create":
            result = (await assistant.create_session(user_id, title)).model_dump(mode="json")
        elif action == "rename":
            result = (await assistant.rename_session(session_id, user_id, title)).model_dump(mode="json")
        elif action == "delete":
            await assistant.delete_session(session_id, user_id)
            result = {"deleted": session_id}
        else:
            messages = await assistant.get_messages(session_id, user_id)
            result = [m.model_dump(mode="json") for m in messages]
    except GlossaryExtractionError as e:
        print(f"Error: {e}")
        return None
    finally:
        repository.close()

    print(json.dumps(result, indent=2))
    return result


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Business glossary and policy rule extraction",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  glossary-extract extract data/customers.csv --dataset-id crm
  glossary-extract extract policies/aml_manual.pdf --mode comprehensive
  glossary-extract ingest data/orders.xlsx
  glossary-extract status 3f2a...
  glossary-extract chat "What is a customer identifier?"
  glossary-extract sessions create --title "KYC questions"
  glossary-extract chat "How to resolve COMP-12?" --session-id 9b1c...
        """,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    p_extract = subparsers.add_parser("extract", help="Extract terms from a local file")
    p_extract.add_argument("file", help="Path to CSV/TSV/JSON/XLSX/PDF/text file")
    p_extract.add_argument("--dataset-id", default=None, help="Dataset id (default: file stem)")
    p_extract.add_argument("--business-context", default=None, help="Free-text business context")
    p_extract.add_argument(
        "--mode",
        choices=["basic", "comprehensive"],
        default="comprehensive",
        help="Extraction depth (default: comprehensive)",
    )
    p_extract.add_argument("-o", "--output", default="outputs", help="Output directory (default: outputs)")
    p_extract.add_argument("-v", "--verbose", action="store_true", help="DEBUG level logging")

    p_ingest = subparsers.add_parser("ingest", help="Upload a file and process it in the background")
    p_ingest.add_argument("file", help="Path to the file")
    p_ingest.add_argument("--db", default=DatabaseConfig.PATH, help=f"SQLite database (default: {DatabaseConfig.PATH})")
    p_ingest.add_argument(
        "--storage-root",
        default=StorageConfig.ROOT,
        help=f"Object store root directory (default: {StorageConfig.ROOT})",
    )
    p_ingest.add_argument("-v", "--verbose", action="store_true", help="DEBUG level logging")

    p_status = subparsers.add_parser("status", help="Show processing status of an upload")
    p_status.add_argument("file_id", help="Upload id printed by ingest")
    p_status.add_argument("--db", default=DatabaseConfig.PATH, help="SQLite database")

    p_chat = subparsers.add_parser("chat", help="Ask a question against the stored glossary")
    p_chat.add_argument("message", help="Question")
    p_chat.add_argument("--db", default=DatabaseConfig.PATH, help="SQLite database")
    p_chat.add_argument("--dataset-id", default=None, help="Restrict context to one dataset")
    p_chat.add_argument("--session-id", default=None, help="Store the exchange in this chat session")
    p_chat.add_argument("--user", default=DEFAULT_USER, help=f"Session owner (default: {DEFAULT_USER})")

    p_sessions = subparsers.add_parser("sessions", help="Manage chat sessions")
    p_sessions.add_argument("action", choices=["list", "create", "rename", "delete", "messages"])
    p_sessions.add_argument("session_id", nargs="?", default=None, help="Session id (rename, delete, messages)")
    p_sessions.add_argument("--title", default=None, help="Title for create or rename")
    p_sessions.add_argument("--user", default=DEFAULT_USER, help=f"Session owner (default: {DEFAULT_USER})")
    p_sessions.add_argument("--db", default=DatabaseConfig.PATH, help="SQLite database")

    return parser


def main(argv: list[str] | None = None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "extract":
        coro = extract(
            file_path=args.file,
            dataset_id=args.dataset_id,
            business_context=args.business_context,
            mode=args.mode,
            output_dir=args.output,
            verbose=args.verbose,
        )
    elif args.command == "ingest":
        coro = ingest(args.file, db_path=args.db, storage_root=args.storage_root, verbose=args.verbose)
    elif args.command == "status":
        coro = status(args.file_id, db_path=args.db)
    elif args.command == "sessions":
        if args.action in ("rename", "delete", "messages") and not args.session_id:
            parser.error(f"sessions {args.action} needs a session id")
        coro = sessions(
            args.action, db_path=args.db, user_id=args.user, session_id=args.session_id, title=args.title
        )
    else:
        coro = chat(
            args.message,
            db_path=args.db,
            dataset_id=args.dataset_id,
            session_id=args.session_id,
            user_id=args.user,
        )

    result = asyncio.run(coro)
    sys.exit(0 if result is not None else 1)


if __name__ == "__main__":
    main()
