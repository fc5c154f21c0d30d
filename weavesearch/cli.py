"""
weavesearch Terminal

Interactive search over an Airweave collection.

Usage:
    weavesearch                       # interactive shell
    weavesearch "onboarding process"  # one search, then exit
    weavesearch --enhance --type semantic "q3 roadmap"

Anything typed in the shell that does not start with "/" is a search;
results are saved to the output folder. /help lists the commands.
"""

import argparse
import asyncio
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

from .common.config import (
    AppConfig,
    LLM_PROVIDERS,
    OUTPUT_FORMATS,
    SEARCH_TYPES,
    describe_config,
    load_config,
    missing_settings,
)
from .common.schemas import SearchMode, SearchResult, render_result
from .retriever import AirweaveError, SearchService

logger = logging.getLogger("weavesearch.cli")

RULE = "-" * 40
PREVIEW_RESULTS = 3
PREVIEW_CHARS = 200
GOODBYE = "Goodbye! Thanks for using weavesearch."
PROMPT = "search> "

HELP_TEXT = """Available Commands:
  <query>           Search the collection (results saved to the output folder)
  /help             Show this help message
  /config           View current configuration
  /debug            Debug the Airweave connection
  /collections      List your collections
  /outputs          Show output folder location
  /type <type>      Set search type (hybrid/semantic/keyword)
  /format <format>  Set output file format (json/text)
  /enhance [on|off] Toggle AI query enhancement and re-ranking
  /set <key> <val>  Set configuration value
                    (api-key, collection-id, provider, llm-key)
  /clear            Clear terminal screen
  /exit             Exit the application"""


@dataclass
class CLIState:
    """Per-session terminal settings"""
    search_type: str = "hybrid"
    output_format: str = "json"
    enhance_queries: bool = False
    last_query: Optional[str] = None
    last_results: List[SearchResult] = field(default_factory=list)


class SearchShell:
    """
    Read-eval-print loop around a SearchService.

    Lines are read with a blocking read_line call (input() by default) and
    each one runs to completion in its own event loop before the next read,
    so no thread is left waiting on stdin when Ctrl+C arrives.
    """

    def __init__(
        self,
        config: AppConfig,
        service: SearchService,
        state: Optional[CLIState] = None,
        echo: Callable[[str], None] = print,
        read_line: Callable[[str], str] = input,
    ):
        self._config = config
        self._service = service
        self._echo = echo
        self._read_line = read_line
        self.state = state or CLIState(
            search_type=config.search.search_type,
            output_format=config.search.output_format,
        )
        self._commands = {
            "/help": self._cmd_help,
            "/config": self._cmd_config,
            "/debug": self._cmd_debug,
            "/collections": self._cmd_collections,
            "/cols": self._cmd_collections,
            "/outputs": self._cmd_outputs,
            "/output": self._cmd_outputs,
            "/type": self._cmd_type,
            "/format": self._cmd_format,
            "/enhance": self._cmd_enhance,
            "/set": self._cmd_set,
            "/clear": self._cmd_clear,
        }

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    def run(self) -> None:
        self.print_welcome()
        self.check_configuration()

        while True:
            try:
                line = self._read_line(PROMPT)
                if not asyncio.run(self._handle_safely(line)):
                    return
            except (EOFError, KeyboardInterrupt):
                self._echo(f"\n{GOODBYE}")
                return

    async def _handle_safely(self, line: str) -> bool:
        try:
            return await self.handle_input(line)
        except Exception as e:
            logger.debug("Command failed", exc_info=True)
            self._echo(f"Error: {e}")
            return True

    async def handle_input(self, line: str) -> bool:
        """Handle one input line; returns False when the shell should stop"""
        text = line.strip()
        if not text:
            return True

        if text.startswith("/"):
            return await self.handle_command(text)

        await self.perform_search(text)
        return True

    async def handle_command(self, text: str) -> bool:
        parts = text.split()
        cmd = parts[0].lower()
        args = parts[1:]

        if cmd in ("/exit", "/quit", "/q"):
            self._echo(GOODBYE)
            return False

        handler = self._commands.get(cmd)
        if handler is None:
            self._echo(f"Unknown command: {cmd}")
            self._echo("Type /help for available commands.")
            return True

        await handler(args)
        return True

    # ------------------------------------------------------------------
    # Startup output
    # ------------------------------------------------------------------

    def print_welcome(self) -> None:
        self._echo("")
        self._echo("weavesearch: search your Airweave collection")
        self._echo("Type a query to search, or /help for commands.")
        self._echo("")

    def check_configuration(self) -> None:
        missing = missing_settings(self._config)
        if not missing:
            self._echo("Configuration complete. Ready to search!")
            return

        self._echo("Configuration incomplete. Missing:")
        for name in missing:
            self._echo(f"  - {name}")
        self._echo("Set them in your .env file or use the /set command.")

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    async def perform_search(self, query: str) -> bool:
        """Search, show a preview and save the results; returns success"""
        self._echo("Searching...")
        mode = SearchMode(self.state.search_type)
        enhancer = self._service.enhancer
        enhancement = None
        summary = None

        if self.state.enhance_queries:
            response, enhancement, summary = await self._service.enhanced_search(query, mode)
        else:
            response = await self._service.search(query, mode)
            if response.success and response.results and enhancer.is_configured():
                self._echo("Generating AI summary...")
                summary = await enhancer.summarize_results(response.results, query)

        if not response.success:
            self._echo(f"Search failed: {response.error}")
            return False

        if enhancement is not None and enhancement.changed:
            self._echo(f"Enhanced query: {enhancement.enhanced_query}")
        self._echo(f"Found {response.total_results} results")

        for rank, result in enumerate(response.results[:PREVIEW_RESULTS], 1):
            self._echo("")
            self._echo(render_result(result, rank, max_content=PREVIEW_CHARS))

        if summary is not None:
            self._echo("")
            self._echo(f"Summary: {summary.summary}")
            for point in summary.key_points:
                self._echo(f"  - {point}")

        path = self._service.save(
            query,
            response,
            enhancement=enhancement,
            summary=summary,
            fmt=self.state.output_format,
        )
        self._echo("")
        self._echo(f"Search complete! View your results in: {path}")

        self.state.last_query = query
        self.state.last_results = list(response.results)
        return True

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def _cmd_help(self, args: List[str]) -> None:
        self._echo(HELP_TEXT)
        self._echo(RULE)
        self._echo("Current Settings:")
        self._echo(f"  Search Type: {self.state.search_type}")
        self._echo(f"  Output Format: {self.state.output_format}")
        self._echo(f"  AI Enhancement: {'on' if self.state.enhance_queries else 'off'}")
        self._echo(f"  Output Folder: {self._service.output_dir}")

    async def _cmd_config(self, args: List[str]) -> None:
        self._echo("Current Configuration:")
        self._echo(RULE)
        for line in describe_config(self._config):
            self._echo(f"  {line}")
        self._echo(RULE)

    async def _cmd_debug(self, args: List[str]) -> None:
        gateway = self._service.gateway
        self._echo("Airweave Client Debug:")
        self._echo(RULE)
        for line in gateway.describe():
            self._echo(f"  {line}")
        self._echo(RULE)

        if not gateway.is_configured():
            self._echo("Cannot test connection: missing API key or collection ID")
            return

        self._echo("Testing connection to Airweave...")
        status = await gateway.test_connection()
        self._echo(("OK: " if status.success else "FAILED: ") + status.message)

    async def _cmd_collections(self, args: List[str]) -> None:
        if not self._config.airweave.api_key:
            self._echo("Missing API key. Use /set api-key <key> first.")
            return

        try:
            collections = await self._service.gateway.list_collections()
        except AirweaveError as e:
            self._echo(f"Failed to list collections: {e}")
            return

        if not collections:
            self._echo("No collections found.")
            return
        self._echo(json.dumps(collections, indent=2, default=str))

    async def _cmd_outputs(self, args: List[str]) -> None:
        self._echo(f"Output folder: {self._service.output_dir}")

    async def _cmd_type(self, args: List[str]) -> None:
        if not args:
            self._echo(f"Current search type: {self.state.search_type}")
            self._echo("Usage: /type [hybrid|semantic|keyword]")
            return

        value = args[0].lower()
        if value not in SEARCH_TYPES:
            self._echo("Invalid type. Use: hybrid, semantic, or keyword")
            return
        self.state.search_type = value
        self._echo(f"Search type set to: {value}")

    async def _cmd_format(self, args: List[str]) -> None:
        if not args:
            self._echo(f"Current output format: {self.state.output_format}")
            self._echo("Usage: /format [json|text]")
            return

        value = args[0].lower()
        if value not in OUTPUT_FORMATS:
            self._echo("Invalid format. Use: json or text")
            return
        self.state.output_format = value
        self._echo(f"Output format set to: {value}")

    async def _cmd_enhance(self, args: List[str]) -> None:
        if args and args[0].lower() in ("on", "off"):
            self.state.enhance_queries = args[0].lower() == "on"
        elif not args:
            self.state.enhance_queries = not self.state.enhance_queries
        else:
            self._echo("Usage: /enhance [on|off]")
            return

        self._echo(f"AI enhancement: {'on' if self.state.enhance_queries else 'off'}")
        if self.state.enhance_queries and not self._service.enhancer.is_configured():
            self._echo(
                f"Note: no API key for provider '{self._config.llm.provider}', "
                "searches will run without AI stages."
            )

    async def _cmd_set(self, args: List[str]) -> None:
        if len(args) < 2:
            self._echo("Usage: /set <key> <value>")
            self._echo("Available keys: api-key, collection-id, provider, llm-key")
            return

        key = args[0].lower()
        value = " ".join(args[1:])

        if key in ("api-key", "apikey"):
            self._service.gateway.set_api_key(value)
            self._echo("Airweave API key updated")
        elif key in ("collection-id", "collectionid", "collection"):
            self._service.gateway.set_collection_id(value)
            self._echo("Collection ID updated")
        elif key == "provider":
            provider = value.lower()
            if provider not in LLM_PROVIDERS:
                self._echo(f"Invalid provider. Use: {', '.join(LLM_PROVIDERS)}")
                return
            self._config.llm.provider = provider
            self._echo(f"LLM provider set to: {provider}")
        elif key in ("llm-key", "llmkey"):
            setattr(self._config.llm, f"{self._config.llm.provider}_api_key", value)
            self._echo(f"{self._config.llm.provider} API key updated")
        else:
            self._echo(f"Unknown setting: {key}")
            self._echo("Available: api-key, collection-id, provider, llm-key")

    async def _cmd_clear(self, args: List[str]) -> None:
        self._echo("\033[2J\033[H")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="weavesearch",
        description="Search an Airweave collection from the terminal.",
    )
    parser.add_argument("query", nargs="*", help="Run one search and exit")
    parser.add_argument("--env-file", type=Path, default=None, help="Path to a .env file (default: ./.env)")
    parser.add_argument("--type", dest="search_type", choices=SEARCH_TYPES, help="Search type")
    parser.add_argument("--limit", type=int, default=None, help="Maximum number of results")
    parser.add_argument("--format", dest="output_format", choices=OUTPUT_FORMATS, help="Output file format")
    parser.add_argument("--enhance", action="store_true", help="Enable AI query enhancement and re-ranking")
    parser.add_argument("--verbose", "-v", action="store_true", help="Show request diagnostics")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    config = load_config(args.env_file)
    if args.search_type:
        config.search.search_type = args.search_type
    if args.output_format:
        config.search.output_format = args.output_format
    if args.limit is not None:
        if args.limit <= 0:
            print("--limit must be a positive integer")
            return 2
        config.search.max_results = args.limit

    logging.basicConfig(
        level=logging.INFO if args.verbose else config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    query = " ".join(args.query).strip()
    if args.query and not query:
        print("Query must not be empty")
        return 2

    shell = SearchShell(config, SearchService(config))
    shell.state.enhance_queries = args.enhance

    try:
        if query:
            ok = asyncio.run(shell.perform_search(query))
            return 0 if ok else 1
        shell.run()
    except KeyboardInterrupt:
        print(f"\n{GOODBYE}")
    return 0
