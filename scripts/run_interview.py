"""Run a founder interview in the terminal.

Usage example:
  python scripts/run_interview.py --pack-id acme --gaps gaps.json
  python scripts/run_interview.py --pack-id acme --draft-pack draft.json
  python scripts/run_interview.py --pack-id acme --draft-pack draft.json --output-pack pack.json

`--gaps` takes a JSON list of gap objects; `--draft-pack` takes a draft context
pack and derives the gaps from it first; `--output-pack` then merges the answers
into a final pack. Answer with an empty line to skip.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = REPO_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from context_pack import CompletionClient, Gap, InMemorySessionStore, SchemaValidatingCompletion
from context_pack.config import Settings, load_dotenv
from context_pack.gap_finder import GapFinder
from context_pack.interviewer import Interviewer
from context_pack.pack_builder import PackBuilder
from context_pack.service import InterviewService


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Interview a founder about their company.")
    parser.add_argument("--pack-id", required=True)
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--gaps", type=Path, help="JSON file with a list of gaps.")
    source.add_argument("--draft-pack", type=Path, help="JSON file with a draft context pack.")
    parser.add_argument("--demo", action="store_true", help="Use the built-in demo questions.")
    parser.add_argument(
        "--output-pack",
        type=Path,
        help="With --draft-pack: merge the answers into a final pack and write it here.",
    )
    parser.add_argument("--verbose", action="store_true", help="Log LLM calls and retries.")
    return parser.parse_args()


def build_completion() -> SchemaValidatingCompletion:
    settings = Settings.from_env()
    return SchemaValidatingCompletion(
        client=CompletionClient.from_settings(settings),
        max_schema_retries=settings.max_schema_retries,
    )


def build_service(completion: SchemaValidatingCompletion | None) -> InterviewService:
    store = InMemorySessionStore()
    if completion is None:
        return InterviewService(interviewer=Interviewer(completion=None, demo_mode=True), store=store)
    return InterviewService(
        interviewer=Interviewer(completion=completion),
        store=store,
        gap_finder=GapFinder(completion=completion),
    )


def main() -> None:
    load_dotenv(REPO_ROOT / ".env")
    args = parse_args()
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)
    if args.output_pack is not None and (args.draft_pack is None or args.demo):
        raise SystemExit("--output-pack needs --draft-pack and a live model")

    gaps = None
    draft_pack = None
    if args.gaps is not None:
        raw_gaps = json.loads(args.gaps.read_text(encoding="utf-8"))
        gaps = [Gap.model_validate(item) for item in raw_gaps]
    elif args.draft_pack is not None:
        draft_pack = json.loads(args.draft_pack.read_text(encoding="utf-8"))

    completion = None if args.demo else build_completion()
    service = build_service(completion)
    started = service.start_interview(args.pack_id, gaps, draft_pack=draft_pack)
    question = started.first_question

    while question is not None:
        print(f"\n[{question.category.value}] {question.question}")
        if question.context:
            print(f"  ({question.context})")
        answer = input("> ").strip()
        outcome = service.submit_answer(
            started.session_id, question.id, answer, skipped=answer == ""
        )
        question = outcome.next_question

    session = service.snapshot(started.session_id)
    print(json.dumps(session.model_dump(mode="json"), indent=2, ensure_ascii=True))

    if args.output_pack is not None and completion is not None and draft_pack is not None:
        pack = PackBuilder(completion=completion).build_from_session(draft_pack, session)
        args.output_pack.write_text(pack.model_dump_json(indent=2) + "\n", encoding="utf-8")
        print(f"Wrote {pack.version.value} pack to {args.output_pack}")


if __name__ == "__main__":
    main()
