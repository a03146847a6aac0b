"""Gap analysis over a draft context pack."""

from __future__ import annotations

import json
import logging
from typing import Any, Mapping

from .models import CompletionRequest, GapAnalysis
from .prompts import load_prompt
from .structured import SchemaValidatingCompletion

GAP_TEMPERATURE = 0.2


class GapFinder:
    """Finds missing or low-confidence fields and ranks them by importance.

    The pack is passed through as opaque JSON; its layout belongs to the
    extraction side of the system.
    """

    def __init__(
        self,
        *,
        completion: SchemaValidatingCompletion,
        logger: logging.Logger | None = None,
    ) -> None:
        self.completion = completion
        self.logger = logger or logging.getLogger("context_pack.gap_finder")

    def analyze_gaps(self, draft_pack: Mapping[str, Any]) -> GapAnalysis:
        request = CompletionRequest(
            system_prompt=load_prompt("gap_analysis"),
            user_prompt=self.build_user_prompt(draft_pack),
            temperature=GAP_TEMPERATURE,
            json_mode=True,
        )
        analysis = self.completion.execute_validated(request, GapAnalysis)
        analysis.gaps.sort(key=lambda gap: gap.importance, reverse=True)

        self.logger.info(
            "gaps_analyzed",
            extra={"gap_count": len(analysis.gaps), "completeness": analysis.completeness},
        )
        return analysis

    @staticmethod
    def build_user_prompt(draft_pack: Mapping[str, Any]) -> str:
        pack_json = json.dumps(dict(draft_pack), indent=2, ensure_ascii=False, default=str)
        return (
            "Analyze this draft context pack and identify critical gaps:\n\n"
            f"{pack_json}\n\n"
            "Identify missing or low-confidence fields that would help engineers understand:\n"
            "- Who the customers are and what they need\n"
            "- What business value different features provide\n"
            "- What to prioritize and what to avoid building\n"
            "- How their technical work connects to business outcomes\n\n"
            "Focus on the gaps that matter most for engineering decisions and rank them by importance."
        )
