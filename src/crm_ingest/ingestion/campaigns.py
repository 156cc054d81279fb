"""UTM campaign → GH code → campaign type resolution.

Defines:
- CampaignMapping: Immutable pair of lookup tables, built once at startup and
  passed explicitly to the resolver (tests inject their own tables).
- DEFAULT_UTM_TO_GH / DEFAULT_GH_TO_TYPE: Production reference data. Append-only,
  maintained by marketing outside the pipeline.
- CampaignCodeResolver: Exact (trimmed, case-insensitive input) lookups, no
  fuzzy matching. Unmapped campaigns are expected and resolve to None.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType


# ── Reference Data ─────────────────────────────────────────────────────────

DEFAULT_UTM_TO_GH: dict[str, str] = {
    "[leads] gh12 (exp13)": "GH12",
    "[leads] gh13 (exp14) - stretch - robin ugc": "GH13",
    "[leads] gh2 - stretch": "GH2",
    "[leads] gh4 - it1 | stretch": "GH4TR",
    "[leads] gh4 - tr | stretch": "GH4TR",
    "[leads] gh4b - stretch": "GH4D",
    "[leads] gh4d - stretch": "GH4D",
    "23337668539": "GH17TR",
    "pmax_22990300921": "GH1",
    "gh4": "GH1",
    "gh4_d": "GH1",
    "gh4d_pmax_stretch": "GH1",
    "gh2_exp3_stretch": "GH2",
    "gh2_it1_stretch": "GH2",
    "gh2_it2_stretch": "GH2",
    "gh4_stretch": "GH4",
    "gh4_exp6_stretch": "GH4",
    "gh4d_stretch": "GH4D",
    "gh4_it1_stretch": "GH4TR",
    "gh4_tr_stretch": "GH4TR",
    "gh5_stretch": "GH5",
    "gh5d_stretch": "GH5D",
    "gh5_tr_stretch": "GH5TR",
    "gh6_it2_stretch": "GH6D",
    "gh9_stretch": "GH9",
    "gh9_exp10_stretch": "GH9",
    "gh16_stretch": "GH16",
    "gh17": "GH17",
    "gh17_pmax_stretch": "GH17",
    "gh17d_pmax_stretch": "GH17D",
    "gh17_tr": "GH17TR",
    "gh17_tr_stretch": "GH17TR",
    "gh20_stretch": "GH20",
    "gh20d_stretch": "GH20D",
    "gh20_tr_stretch": "GH20TR",
    "gh21_stretch": "GH21",
    "gh21d_stretch": "GH21D",
    "gh21_tr_stretch": "GH21TR",
    "gh22": "GH22",
    "gh22_pmax_stretch": "GH22",
    "gh22d_stretch": "GH22",
    "gh24_stretch": "GH24",
    "gh24d_stretch": "GH24D",
    "gh24_tr_stretch": "GH24TR",
    "gh25_tr_stretch": "GH25TR",
    "gh30_stretch": "GH30",
    "gh30d_stretch": "GH30D",
    "gh30_tr_stretch": "GH30TR",
    "gh32": "GH4D",
    "gh32_pmax_stretch": "GH32",
    "gh32_d": "GH32D",
    "gh32d_pmax_stretch": "GH32D",
    "gh32_tr": "GH32TR",
    "gh32_tr_pmax_stretch": "GH32TR",
    "gh33_stretch": "GH33",
    "gh33d_stretch": "GH33D",
    "gh33_tr_stretch": "GH33TR",
    "gh36_stretch": "GH36",
    "gh37_stretch": "GH37",
    "gh38_stretch": "GH38",
    "gh39_stretch": "GH39",
    "gh40_stretch": "GH40D",
    "gh40d_stretch": "GH40D",
    "gh40_tr_stretch": "GH40TR",
    "gh41_stretch": "GH41",
    "gh42_stretch": "GH42",
    "gh42d_stretch": "GH42D",
    "gh43_stretch": "GH43",
    "gh43d_stretch": "GH43D",
    "gh43_tr_stretch": "GH43TR",
    "gh44_stretch": "GH44",
    "gh44d_stretch": "GH44D",
    "gh44_tr_stretch": "GH44TR",
    "gh45_stretch": "GH45",
    "gh45d_stretch": "GH45D",
    "gh45_tr_stretch": "GH45TR",
    "nurture_calculator_stretch": "Nurture flow",
    "nurture_stretch": "Nurture flow",
    "stretch_adviesgesprek_befr": "Nurture flow",
    "stretch_adviesgesprek_benl": "Nurture flow",
    "stretch_calculator_benl": "Nurture flow",
    "stretch_calculator_befr": "Nurture flow",
    "calculator_stretch": "Nurture flow",
}

DEFAULT_GH_TO_TYPE: dict[str, str] = {
    "GH5": "Type 1", "GH5D": "Type 1", "GH5TR": "Type 1",
    "GH9": "Type 1",
    "GH21": "Type 1", "GH21D": "Type 1", "GH21TR": "Type 1",
    "GH36": "Type 1",
    "GH40": "Type 1", "GH40D": "Type 1", "GH40TR": "Type 1",
    "GH43": "Type 1", "GH43D": "Type 1", "GH43TR": "Type 1",
    "GH44": "Type 1", "GH44D": "Type 1", "GH44TR": "Type 1",
    "GH45": "Type 1", "GH45D": "Type 1", "GH45TR": "Type 1",
    "GH46": "Type 1",
    "GH24": "Type 2", "GH24D": "Type 2", "GH24TR": "Type 2",
    "GH30": "Type 2", "GH30D": "Type 2", "GH30TR": "Type 2",
    "GH33": "Type 3", "GH33D": "Type 3", "GH33TR": "Type 3",
    "GH37": "Type 3", "GH38": "Type 3", "GH39": "Type 3", "GH41": "Type 3",
}


# ── Configuration Object ───────────────────────────────────────────────────


@dataclass(frozen=True)
class CampaignMapping:
    """Read-only UTM → GH code and GH code → campaign type tables.

    Code-table keys are stored lowercased; outputs are kept exactly as given.
    """

    utm_to_gh: Mapping[str, str] = field(default_factory=dict)
    gh_to_type: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "utm_to_gh",
            MappingProxyType({k.strip().lower(): v for k, v in self.utm_to_gh.items()}),
        )
        object.__setattr__(self, "gh_to_type", MappingProxyType(dict(self.gh_to_type)))


def default_campaign_mapping() -> CampaignMapping:
    """CampaignMapping carrying the production reference tables."""
    return CampaignMapping(utm_to_gh=DEFAULT_UTM_TO_GH, gh_to_type=DEFAULT_GH_TO_TYPE)


# ── Resolver ───────────────────────────────────────────────────────────────


class CampaignCodeResolver:
    """Maps free-text UTM campaigns to GH codes and campaign types.

    Args:
        mapping: Injected CampaignMapping tables.
    """

    def __init__(self, mapping: CampaignMapping) -> None:
        self._mapping = mapping

    def resolve_code(self, utm_campaign: str | None) -> str | None:
        if not utm_campaign:
            return None
        return self._mapping.utm_to_gh.get(utm_campaign.strip().lower())

    def campaign_type(self, gh_code: str | None) -> str | None:
        if not gh_code:
            return None
        return self._mapping.gh_to_type.get(gh_code)

    def resolve(self, utm_campaign: str | None) -> tuple[str | None, str | None]:
        """Return ``(gh_code, campaign_type)`` for a UTM campaign."""
        gh_code = self.resolve_code(utm_campaign)
        return gh_code, self.campaign_type(gh_code)
