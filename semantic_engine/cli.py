"""
semantic_engine/cli.py
Command-line interface for the Semantic Engine.
All processing is local. Only --narrative talks to a (local) Ollama host.

USAGE:
  semantic-engine chat.txt --output engine.db
  semantic-engine export.json --format json --taxonomy relationship
  semantic-engine chat.txt --json-out report.json --narrative --model llama3:8b-instruct
  semantic-engine --list-models

EXAMPLES:
  # WhatsApp export, business taxonomy, SQLite + JSON report
  semantic-engine "WhatsApp Chat with Team.txt" -o engine.db --json-out report.json

  # Relationship taxonomy with WordNet synonym matching
  semantic-engine chat.txt --taxonomy relationship --dictionary
"""

import argparse
import logging
import sys
import time
from dataclasses import replace
from pathlib import Path

from semantic_engine import __version__
from semantic_engine.config import load_config
from semantic_engine.errors import SemanticEngineError
from semantic_engine.exporters.sqlite_exporter import export
from semantic_engine.parsers import FORMATS, JSONChatError, parse_file
from semantic_engine.pipeline import run_pipeline
from semantic_engine.report import build_report
from semantic_engine.report_export import export_to_json

logger = logging.getLogger(__name__)

GREEN  = '\033[92m'
YELLOW = '\033[93m'
RED    = '\033[91m'
CYAN   = '\033[96m'
RESET  = '\033[0m'
BOLD   = '\033[1m'

HEALTH_COLOR = {'excellent': GREEN, 'healthy': GREEN, 'concerning': YELLOW, 'critical': RED}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog        = 'semantic-engine',
        description = 'Semantic Engine: deterministic intent, behavior and evolution analysis of chat exports',
        formatter_class = argparse.RawDescriptionHelpFormatter,
        epilog = """
NOTE:
  Intent scores are keyword-based signals, not judgements about people.
  Message text never leaves this machine; --narrative sends statistics only.
        """
    )

    parser.add_argument(
        'input',
        nargs   = '?',
        type    = Path,
        help    = 'Chat export: WhatsApp .txt or JSON',
    )
    parser.add_argument(
        '--format', '-f',
        choices = FORMATS,
        default = 'auto',
        help    = 'Input format (default: auto, by file extension)',
    )
    parser.add_argument(
        '--taxonomy', '-t',
        choices = ('business', 'relationship'),
        default = None,
        help    = 'Intent taxonomy (default: from config, else business)',
    )
    parser.add_argument(
        '--output', '-o',
        default = None,
        type    = Path,
        help    = 'SQLite database to write (optional)',
    )
    parser.add_argument(
        '--json-out',
        default = None,
        type    = Path,
        help    = 'Write a hashed JSON report to this path (optional)',
    )
    parser.add_argument(
        '--run-label',
        default = '',
        help    = 'Label for this run (stored in engine_meta table)',
    )
    parser.add_argument(
        '--dictionary',
        action  = 'store_true',
        help    = 'Enable WordNet synonym matching (requires the nltk wordnet corpus)',
    )
    parser.add_argument(
        '--narrative',
        action  = 'store_true',
        help    = 'Generate an AI narrative from segment statistics via Ollama',
    )
    parser.add_argument(
        '--model', '-m',
        default = 'llama3:8b-instruct',
        help    = 'Ollama model name (default: llama3:8b-instruct)',
    )
    parser.add_argument(
        '--ollama-host',
        default = 'http://localhost:11434',
        help    = 'Ollama host URL (default: http://localhost:11434)',
    )
    parser.add_argument(
        '--list-models',
        action  = 'store_true',
        help    = 'List locally available Ollama models and exit',
    )
    parser.add_argument(
        '--aggressive',
        action  = 'store_true',
        help    = 'Aggressive text normalization (strip non-alphanumerics)',
    )
    parser.add_argument(
        '--config-dir',
        default = None,
        type    = Path,
        help    = 'Directory holding semantic_engine_config.json (default: cwd)',
    )
    parser.add_argument(
        '--verbose', '-v',
        action  = 'store_true',
        help    = 'Enable debug logging',
    )
    parser.add_argument(
        '--version',
        action  = 'version',
        version = f'%(prog)s {__version__}',
    )
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    # ── LOGGING SETUP ────────────────────────────────────────
    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level   = log_level,
        format  = '%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt = '%H:%M:%S',
    )

    # ── LIST MODELS ──────────────────────────────────────────
    if args.list_models:
        from semantic_engine.llm.ollama_adapter import OllamaNarrativeAdapter
        models = OllamaNarrativeAdapter(host=args.ollama_host).list_available_models()
        if models:
            _print(f"\n{BOLD}Available Ollama models:{RESET}")
            for m in models:
                _print(f"  • {m}")
        else:
            _print(f"{YELLOW}No models found. Is Ollama running?{RESET}")
        return 0

    # ── VALIDATE INPUT ───────────────────────────────────────
    if args.input is None:
        _print(f"{RED}Error: INPUT is required{RESET}")
        return 2
    if not args.input.is_file():
        _print(f"{RED}Error: File not found: {args.input}{RESET}")
        return 1

    config = load_config(args.config_dir)
    if args.taxonomy:
        config.lexical = replace(config.lexical, taxonomy=args.taxonomy)
    if args.aggressive:
        config.transform = replace(config.transform, aggressive_normalization=True)

    _banner()
    _print(f"Input            : {CYAN}{args.input}{RESET}")
    _print(f"Taxonomy         : {CYAN}{config.lexical.taxonomy}{RESET}")
    _print(f"Dictionary       : {CYAN}{'WordNet' if args.dictionary else 'off'}{RESET}")
    if args.narrative:
        _print(f"Narrative model  : {CYAN}{args.model}{RESET}")
    _print("")

    # ── PARSE ────────────────────────────────────────────────
    _step("Parsing chat export...")
    t0 = time.time()
    try:
        raws, metadata = parse_file(args.input, args.format)
    except (OSError, JSONChatError) as e:
        _print(f"{RED}Error: could not read {args.input}: {e}{RESET}")
        return 1
    _ok(f"{len(raws)} messages from {len(metadata.participants)} participants in {_elapsed(t0)}")

    if not raws:
        _print(f"\n{YELLOW}No messages found in {args.input}{RESET}")
        _print("Check the export format (WhatsApp 'Export chat' without media, or JSON)")
        return 1

    # ── ANALYSIS ─────────────────────────────────────────────
    dictionary = None
    if args.dictionary:
        from semantic_engine.dictionary import WordNetDictionary
        dictionary = WordNetDictionary()
        if not dictionary.ensure_ready():
            _print(
                f"\n{YELLOW}⚠ WordNet unavailable ({dictionary.failure_reason}); continuing without synonyms.{RESET}\n"
                f"  To enable: python -m nltk.downloader wordnet\n"
            )
            dictionary = None

    _step("Running semantic analysis...")
    t0 = time.time()

    def progress(fraction, msg):
        pct = int(fraction * 40)
        bar = '█' * pct + '░' * (40 - pct)
        sys.stdout.write(f"\r  [{bar}] {int(fraction * 100):>3}%  {msg[:40]:<40}")
        sys.stdout.flush()

    try:
        result = run_pipeline(raws, metadata, config, dictionary=dictionary, progress_cb=progress)
    except SemanticEngineError as e:
        sys.stdout.write('\n')
        _print(f"{RED}Analysis failed: {e}{RESET}")
        return 1
    finally:
        if dictionary is not None:
            dictionary.close()

    sys.stdout.write('\n')
    _ok(f"{len(result.segments)} segments in {_elapsed(t0)}")

    # ── EXPORT ───────────────────────────────────────────────
    if args.output:
        _step("Writing SQLite database...")
        t0 = time.time()
        conversation_id = export(
            db_path   = args.output,
            result    = result,
            run_label = args.run_label or str(args.input),
        )
        _ok(f"Conversation {conversation_id} written in {_elapsed(t0)}")

    report = build_report(result)
    if args.json_out:
        _step("Writing JSON report...")
        args.json_out.write_text(
            export_to_json(report, run_parameters={
                'input':    args.input.name,
                'format':   args.format,
                'taxonomy': config.lexical.taxonomy,
                'dictionary': bool(dictionary),
            }),
            encoding='utf-8',
        )
        _ok(f"Report → {args.json_out}")

    # ── SUMMARY ──────────────────────────────────────────────
    _print(f"\n{BOLD}{GREEN}✓ Complete{RESET}")
    _print(f"  Messages   : {report.summary.message_count:,}")
    _print(f"  Segments   : {report.summary.segment_count:,}")
    if report.summary.cultural_context:
        _print(f"  Culture    : {report.summary.cultural_context}")
    if report.conversation_health:
        color = HEALTH_COLOR.get(report.conversation_health, RESET)
        _print(f"  Health     : {color}{report.health_score} ({report.conversation_health}){RESET}")
        _print(f"  Direction  : {report.intent_overview.overall_directionality}")
    if report.critical_moments:
        _print(f"\n  Critical moments:")
        for m in report.critical_moments:
            _print(f"    [{m.type:<12}] {m.timestamp}  {m.reason}")
    for layer, err in report.layer_errors.items():
        _print(f"  {YELLOW}⚠ {layer} layer failed: {err}{RESET}")

    # ── NARRATIVE ────────────────────────────────────────────
    if args.narrative:
        _step("Generating narrative...")
        from semantic_engine.llm.ollama_adapter import OllamaNarrativeAdapter
        from semantic_engine.narrative import synthesize_narrative
        narrative = synthesize_narrative(
            result, OllamaNarrativeAdapter(model=args.model, host=args.ollama_host),
        )
        if narrative.generated:
            _print(f"\n{BOLD}Narrative ({narrative.model_used}):{RESET}\n  {narrative.summary}")
            for insight in narrative.insights:
                _print(f"    • {insight}")
        else:
            _print(f"  {YELLOW}⚠ Narrative skipped: {narrative.reason}{RESET}")

    _print("")
    return 0


# ── PRINT HELPERS ────────────────────────────────────────────

def _banner():
    _print(f"""
{BOLD}{CYAN}
  SEMANTIC ENGINE v{__version__}
  Intent · Behavior · Segments · Evolution
{RESET}""")

def _step(msg):  _print(f"  {CYAN}→{RESET} {msg}")
def _ok(msg):    _print(f"  {GREEN}✓{RESET} {msg}")
def _print(msg): print(msg)

def _elapsed(t0: float) -> str:
    s = time.time() - t0
    return f"{s:.1f}s" if s < 60 else f"{int(s//60)}m {int(s%60)}s"


if __name__ == '__main__':
    sys.exit(main())
