# seed_scheduler/selectors.py
from typing import Dict, List, Optional

from .errors import InvalidShootSpec
from .models import CloudProfile, LabelSelectorRequirement, SeedSelector, Shoot

OPERATORS = ("In", "NotIn", "Exists", "DoesNotExist")
WILDCARD = "*"


def validate_selector(selector: Optional[SeedSelector]):
    if selector is None:
        return
    for req in selector.match_expressions:
        if req.operator not in OPERATORS:
            raise InvalidShootSpec(f"seed selector: unknown operator {req.operator!r} for key {req.key!r}")
        if req.operator in ("In", "NotIn") and not req.values:
            raise InvalidShootSpec(f"seed selector: operator {req.operator} on {req.key!r} needs values")
        if req.operator in ("Exists", "DoesNotExist") and req.values:
            raise InvalidShootSpec(f"seed selector: operator {req.operator} on {req.key!r} takes no values")


def effective_selector(shoot: Shoot, cloud_profile: Optional[CloudProfile]) -> Optional[SeedSelector]:
    """
    Merge the shoot's own seed selector with the cloud profile default.
    Label requirements from both are ANDed. An explicit provider_types list
    on the shoot wins over the profile's.
    """
    own = shoot.seed_selector
    default = None
    if cloud_profile is not None and cloud_profile.provider_type == shoot.provider_type:
        default = cloud_profile.seed_selector
    if own is None and default is None:
        return None
    if default is None:
        return own
    if own is None:
        return default

    expressions: List[LabelSelectorRequirement] = list(default.match_expressions) + list(own.match_expressions)
    match_labels: Dict[str, str] = dict(default.match_labels)
    for k, v in own.match_labels.items():
        if k in match_labels and match_labels[k] != v:
            # both values are required; keep the shoot's and AND the profile's as an expression
            expressions.append(LabelSelectorRequirement(key=k, operator="In", values=[match_labels[k]]))
        match_labels[k] = v

    provider_types = own.provider_types if own.provider_types is not None else default.provider_types
    return SeedSelector(match_labels=match_labels, match_expressions=expressions, provider_types=provider_types)


def _requirement_matches(req: LabelSelectorRequirement, labels: Dict[str, str]) -> bool:
    if req.operator == "In":
        return req.key in labels and labels[req.key] in req.values
    if req.operator == "NotIn":
        return req.key not in labels or labels[req.key] not in req.values
    if req.operator == "Exists":
        return req.key in labels
    if req.operator == "DoesNotExist":
        return req.key not in labels
    raise InvalidShootSpec(f"seed selector: unknown operator {req.operator!r}")


def labels_match(selector: Optional[SeedSelector], labels: Dict[str, str]) -> bool:
    if selector is None:
        return True
    for k, v in selector.match_labels.items():
        if labels.get(k) != v:
            return False
    return all(_requirement_matches(req, labels) for req in selector.match_expressions)


def provider_type_allowed(selector: Optional[SeedSelector], provider_type: str) -> bool:
    if selector is None or selector.provider_types is None:
        return True
    if WILDCARD in selector.provider_types:
        return True
    return provider_type in selector.provider_types
