"""
Personalization of the catalog from a child's risk profile.

Adjustments are applied in a fixed order:
1. contraindication filtering
2. immunocompromised filtering (live-attenuated doses removed)
3. prematurity offset (corrected age)
4. travel urgency escalation
"""

import logging
from typing import Iterable, List, Optional

from .catalog import Catalog
from .schema import ChildProfile, DoseDefinition, EngineConfig, Urgency

logger = logging.getLogger(__name__)

def personalize(catalog: Catalog,
                risk_factors: Iterable[str] = (),
                contraindications: Iterable[str] = (),
                travel_planned: bool = False,
                config: Optional[EngineConfig] = None) -> Catalog:
    """Derive a new catalog for one child; the input catalog is untouched"""
    config = config or EngineConfig()
    risk_factors = frozenset(risk_factors)
    contraindications = frozenset(contraindications)

    doses: List[DoseDefinition] = list(catalog.doses)

    if contraindications:
        kept = [d for d in doses if not (d.contraindication_tags & contraindications)]
        _log_removed("contraindicated", doses, kept)
        doses = kept

    if config.immunocompromised_risk_factor in risk_factors:
        kept = [d for d in doses if config.live_vaccine_tag not in d.tags]
        _log_removed("live vaccine (immunocompromised)", doses, kept)
        doses = kept

    if config.premature_risk_factor in risk_factors and config.premature_offset_weeks:
        offset = config.premature_offset_weeks
        # max_delay_weeks is relative to the target, so the window end moves by the same offset
        doses = [
            d.model_copy(update={"target_age_weeks": d.target_age_weeks + offset})
            for d in doses
        ]
        logger.debug(f"Shifted {len(doses)} doses by {offset} weeks for corrected age")

    if travel_planned:
        escalated = []
        adjusted = []
        for dose in doses:
            if config.travel_tag in dose.tags:
                # urgency only; the delay tolerance is left as is
                dose = dose.model_copy(update={"urgency": Urgency.CRITICAL, "can_be_delayed": False})
                escalated.append(dose.id)
            adjusted.append(dose)
        doses = adjusted
        if escalated:
            logger.debug(f"Escalated travel-critical doses: {escalated}")

    return catalog.with_doses(doses)

def personalize_for(catalog: Catalog, profile: ChildProfile,
                    config: Optional[EngineConfig] = None) -> Catalog:
    """Personalize using the risk inputs of a ChildProfile"""
    return personalize(
        catalog,
        risk_factors=profile.risk_factors,
        contraindications=profile.contraindications,
        travel_planned=profile.travel_planned,
        config=config
    )

def removed_doses(source: Catalog, derived: Catalog) -> List[str]:
    """Ids present in the source catalog but dropped from the derived one"""
    kept = set(derived.ids)
    return [dose_id for dose_id in source.ids if dose_id not in kept]

def _log_removed(reason: str, before: List[DoseDefinition], after: List[DoseDefinition]) -> None:
    removed = [d.id for d in before if d not in after]
    if removed:
        logger.debug(f"Removed {len(removed)} {reason} doses: {removed}")
