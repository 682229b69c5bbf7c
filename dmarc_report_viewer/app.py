import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, TextIO

import structlog

from dmarc_report_viewer.annotation import WEEKDAY_NAMES
from dmarc_report_viewer.logging import configure_logging
from dmarc_report_viewer.message_store import EmailMessageStore, MessageStore
from dmarc_report_viewer.pipeline import AnalysisFailure, analyze_displayed_message
from dmarc_report_viewer.rendering import render_html, render_text

logger = structlog.get_logger()

renderers = {
    "html": render_html,
    "text": render_text,
}


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Show the contents of a DMARC aggregate report received "
        "as a compressed e-mail attachment."
    )
    parser.add_argument("message", type=Path, help="E-mail message (.eml file)")
    parser.add_argument(
        "--configuration",
        type=argparse.FileType("r"),
        default=None,
        help="Configuration file",
    )
    parser.add_argument(
        "--format",
        choices=sorted(renderers),
        default=None,
        help="Output format (default: text)",
    )
    parser.add_argument(
        "--debug",
        default=False,
        action="store_true",
        help="Enable debug logging",
    )
    args = parser.parse_args(argv)

    configuration: Dict[str, Any] = {}
    if args.configuration:
        configuration = json.load(args.configuration)
        args.configuration.close()

    configure_logging(configuration.get("logging", {}), debug=args.debug)

    locale = configuration.get("locale", "en")
    if locale not in WEEKDAY_NAMES:
        parser.error(f"unsupported locale '{locale}'")
    output_format = args.format or configuration.get("output_format", "text")
    if output_format not in renderers:
        parser.error(f"unsupported output format '{output_format}'")

    if not args.message.is_file():
        parser.error(f"no such message file: {args.message}")

    store = EmailMessageStore.from_files(args.message)
    return App(store, renderer=renderers[output_format], locale=locale).run()


class App:
    def __init__(
        self,
        store: MessageStore,
        *,
        renderer=render_text,
        locale: str = "en",
        output: Optional[TextIO] = None,
    ):
        self.store = store
        self.renderer = renderer
        self.locale = locale
        self.output = output

    def run(self) -> int:
        analysis = asyncio.run(analyze_displayed_message(self.store))
        if isinstance(analysis, AnalysisFailure):
            logger.error(
                "DMARC report analysis failed.",
                error=analysis.error,
                detail=analysis.detail,
            )
            return 1

        rendered = self.renderer(analysis.result, self.locale)
        if rendered:
            print(rendered, file=self.output or sys.stdout)
        else:
            logger.info("Nothing to display.")
        return 0


def cli():
    sys.exit(main())
