"""
Message assembler — merges property layers in precedence order and applies a rule set.

Layers, lowest to highest precedence:
1. the client token
2. super properties (filtered by the rule set)
3. properties extracted from the user's properties object
4. call-site properties (event, distinct id, time, ...); None values are skipped

A configured token is authoritative and is re-applied after the merge.
"""

from datetime import datetime
from typing import Any, Iterable, Mapping, Optional

from mixpanel_client.core.extractor import PropertyExtractor
from mixpanel_client.core.properties import PropertyId
from mixpanel_client.core.rules import AssembledProperties, RuleSet
from mixpanel_client.core.values import DROPPED
from mixpanel_client.errors import MessageBuildError


def merge_layer(rules: RuleSet, props: AssembledProperties, pairs: Iterable[tuple[str, Any]],
                super_layer: bool = False) -> None:
    for name, value in pairs:
        ident = rules.match(name)
        if super_layer and not rules.accepts_super(ident):
            continue
        if ident is None:
            props.ordinary[name] = value
        else:
            props.special[ident] = value


def assemble(
    rules: RuleSet,
    *,
    token: Optional[str],
    super_properties: Iterable[tuple[str, Any]],
    user_properties: Any,
    extra_properties: Optional[Mapping[PropertyId, Any]],
    extractor: PropertyExtractor,
    now: datetime,
) -> dict[str, Any]:
    if rules.finalize is None:
        raise ValueError(f"Message kind '{rules.kind.value}' cannot be assembled from properties")

    props = AssembledProperties()
    try:
        if token is not None:
            props.special[PropertyId.TOKEN] = token
        merge_layer(rules, props, super_properties, super_layer=True)
        merge_layer(rules, props, extractor.extract(user_properties))
        for ident, value in (extra_properties or {}).items():
            normalized = extractor.normalize(value)
            if normalized is not DROPPED:
                props.special[ident] = normalized
        if token is not None:
            props.special[PropertyId.TOKEN] = token
        return rules.finalize(rules, props, now)
    except MessageBuildError:
        raise
    except Exception as e:
        raise MessageBuildError(
            f"Failed to build '{rules.kind.value}' message: {e}",
            details={"kind": rules.kind.value},
        ) from e
