"""Score questionnaire answers locally and print the recommendation.

Useful when tuning the questionnaire, tier map or flag metadata:
- Reads one JSON object of answers per file (question id -> answer)
- Uses the same configuration paths and feature flags as the API (env / .env)
- Never calls the LLM unless --llm-mode is given and OPENAI_API_KEY is set

Example:
    python scripts/score_answers.py answers.json --summary
"""

# pyright: reportMissingImports=false
from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

from care_nav.core.llm.deps import build_openai_client
from care_nav.core.settings import get_settings
from care_nav.gcp.advice.service import GcpAdviceService, normalize_llm_mode
from care_nav.gcp.config_store import GcpConfigStore
from care_nav.gcp.gating import GatePolicy
from care_nav.gcp.schemas import CareRecommendation
from care_nav.gcp.service import GcpRecommendationService


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("paths", nargs="+", type=Path, help="JSON files with answers")
    parser.add_argument(
        "--llm-mode",
        default="off",
        help="off|shadow|assist (default: off)",
    )
    parser.add_argument(
        "--summary",
        action="store_true",
        help="Print one line per file instead of the full contract",
    )
    return parser.parse_args(argv)


def _summary_line(path: Path, rec: CareRecommendation) -> str:
    adj = rec.adjudication
    return (
        f"{path.name}: {rec.tier} score={rec.tier_score} confidence={rec.confidence} "
        f"allowed={','.join(rec.allowed_tiers)} reason={adj.adjudication_reason}"
    )


async def _run(args: argparse.Namespace) -> int:
    settings = get_settings()
    config = GcpConfigStore.from_settings(settings).get()
    svc = GcpRecommendationService(
        config=config,
        advisor=GcpAdviceService(
            llm_client=build_openai_client(settings),
            timeout_seconds=float(settings.openai_timeout_seconds),
        ),
        policy=GatePolicy(behavior_gate_enabled=settings.behavior_gate_enabled),
    )
    llm_mode = normalize_llm_mode(args.llm_mode)

    for path in args.paths:
        answers = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(answers, dict):
            print(f"{path}: expected a JSON object of answers", file=sys.stderr)
            return 2
        rec = await svc.recommend(answers=answers, llm_mode=llm_mode)
        if args.summary:
            print(_summary_line(path, rec))
        else:
            print(rec.model_dump_json(indent=2, exclude_none=True))
    return 0


def main() -> None:
    raise SystemExit(asyncio.run(_run(_parse_args())))


if __name__ == "__main__":
    main()
