"""Commands: per-domain overrides, the global rule list, and the master switch."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from calmguard.commands._base import CalmCommand
from calmguard.commands._context import ack_result

if TYPE_CHECKING:
    from calmguard.commands._context import AppContext


@click.command(
    cls=CalmCommand,
    examples="""\
  calmguard override youtube.com --allow thumbnail-dimming
  calmguard override news.example --disable
  calmguard override news.example --clear""",
)
@click.argument("domain")
@click.option("--disable", is_flag=True, help="No rules on DOMAIN.")
@click.option("--enable", is_flag=True, help="Rules allowed on DOMAIN.")
@click.option(
    "--allow",
    "allowed",
    multiple=True,
    metavar="RULE",
    help="Only these rules on DOMAIN (repeatable).",
)
@click.option("--clear", is_flag=True, help="Remove the override for DOMAIN.")
@click.pass_obj
def override(
    app: AppContext,
    domain: str,
    disable: bool,
    enable: bool,
    allowed: tuple[str, ...],
    clear: bool,
) -> None:
    """Narrow which rules run on DOMAIN."""
    from calmguard.domain.preferences import DomainOverride
    from calmguard.messaging.protocol import SetDomainOverride

    if disable and enable:
        raise click.UsageError("--disable and --enable are mutually exclusive")
    enabled = False if disable else (True if enable else None)

    new_override = None
    if not clear:
        new_override = DomainOverride(
            enabled=enabled,
            allowed_rule_ids=frozenset(allowed) if allowed else None,
        )
    ack = app.exchange(SetDomainOverride(domain=domain, override=new_override))
    data = {
        "domain": domain,
        "override": new_override.model_dump(mode="json") if new_override else None,
    }
    app.emit(ack_result("set_domain_override", ack, data))


@click.command(
    cls=CalmCommand,
    examples="""\
  calmguard rules autoplay-block audio-surprise-block
  calmguard rules""",
)
@click.argument("rule_ids", nargs=-1, metavar="[RULE]...")
@click.pass_obj
def rules(app: AppContext, rule_ids: tuple[str, ...]) -> None:
    """Enable only the given rules everywhere (no arguments: all rules)."""
    from calmguard.domain.types import BuiltinRule
    from calmguard.messaging.protocol import SetEnabledRules

    ack = app.exchange(SetEnabledRules(rule_ids=list(rule_ids)))
    known = {rule.value for rule in BuiltinRule}
    result = ack_result("set_enabled_rules", ack, {"enabled_rule_ids": list(rule_ids) or "all"})
    unknown = [rule_id for rule_id in rule_ids if rule_id not in known]
    if unknown and result.ok:
        result = result.model_copy(
            update={"warnings": [f"not a built-in rule: {rule_id}" for rule_id in unknown]}
        )
    app.emit(result)


@click.command()
@click.pass_obj
def enable(app: AppContext) -> None:
    """Turn calmguard on."""
    from calmguard.messaging.protocol import SetExtensionEnabled

    ack = app.exchange(SetExtensionEnabled(enabled=True))
    app.emit(ack_result("set_extension_enabled", ack, {"extension_enabled": True}))


@click.command()
@click.pass_obj
def disable(app: AppContext) -> None:
    """Turn calmguard off; calm mode is reported inactive until re-enabled."""
    from calmguard.messaging.protocol import SetExtensionEnabled

    ack = app.exchange(SetExtensionEnabled(enabled=False))
    app.emit(ack_result("set_extension_enabled", ack, {"extension_enabled": False}))
