from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from functools import partial

from eventmap.config import Settings
from eventmap.modules.alterations.engine import apply_alterations
from eventmap.modules.alterations.schemas import Alteration
from eventmap.modules.builder.context import BuildContext, BuildLimits
from eventmap.modules.builder.tree_builder import TreeBuilder
from eventmap.modules.content.random_values import (
    clean_up_random_values,
    normalize_add_keyword_random_choice_labels,
)
from eventmap.modules.dedup.engine import DedupOptions, deduplicate_tree
from eventmap.modules.hubs.engine import optimize_hub_patterns
from eventmap.modules.ink.analysis import analyze_bytecode, load_bytecode
from eventmap.modules.ink.engine import StoryEngineFactory
from eventmap.modules.lookup.client import fetch_id_to_name
from eventmap.modules.lookup.names import replace_card_ids
from eventmap.modules.pipeline.io import UnitRecord
from eventmap.modules.refs.engine import (
    normalize_refs_pointing_to_choice_nodes,
    normalize_refs_pointing_to_combat_nodes,
    promote_shallow_dialogue_menu_hub,
)
from eventmap.modules.refs.ref_children import convert_sibling_and_cousin_refs
from eventmap.modules.splitter.engine import filter_default_nodes, separate_choices_from_effects
from eventmap.modules.tree.index import count_nodes
from eventmap.modules.tree.model import EventTree
from eventmap.modules.units.schemas import UnitTuning, default_unit_tuning
from eventmap.modules.validation.engine import InvalidRef, check_invalid_refs

logger = logging.getLogger(__name__)

NameLookup = Callable[[], Awaitable[dict[int, str]]]


@dataclass(slots=True)
class RunReport:
    parsed: int = 0
    failed: list[str] = field(default_factory=list)
    empty: int = 0
    truncated: list[str] = field(default_factory=list)
    nodes_built: int = 0
    nodes_final: int = 0
    pass_counts: dict[str, int] = field(default_factory=dict)
    invalid_refs: list[InvalidRef] = field(default_factory=list)

    def count(self, pass_name: str, amount: int) -> None:
        self.pass_counts[pass_name] = self.pass_counts.get(pass_name, 0) + int(amount)


def build_unit_tree(
    unit: UnitRecord,
    *,
    engine_factory: StoryEngineFactory,
    settings: Settings,
    tuning: UnitTuning,
) -> tuple[EventTree | None, BuildContext | None]:
    """Explore one unit's story into a raw tree.

    Malformed bytecode aborts the run; any other failure only drops this unit.
    """
    name = unit.display_name
    bytecode = load_bytecode(unit.text or "", unit_name=name)
    context = BuildContext(
        unit_name=name,
        limits=BuildLimits.from_settings(settings),
        analysis=analyze_bytecode(bytecode, unit_name=name),
        dialogue_menu=tuning.dialogue_menu(name),
        convergence=tuning.convergence(name),
    )
    try:
        engine = engine_factory(unit.text or "")
        root = TreeBuilder(engine, context).build()
    except Exception:
        logger.exception("unit=%s failed to build", name)
        return None, context
    if root is None:
        logger.warning("unit=%s produced no nodes", name)
        return None, context
    tree = EventTree(name=name, type=unit.type, artwork=unit.artwork or "", root=root, next_id=context.next_id)
    return tree, context


def build_trees(
    units: list[UnitRecord],
    *,
    engine_factory: StoryEngineFactory,
    settings: Settings,
    tuning: UnitTuning,
    report: RunReport,
) -> list[EventTree]:
    trees: list[EventTree] = []
    for position, unit in enumerate(units, start=1):
        if not unit.text:
            report.empty += 1
            continue
        logger.debug("[%s/%s] parsing %r", position, len(units), unit.display_name)
        tree, context = build_unit_tree(unit, engine_factory=engine_factory, settings=settings, tuning=tuning)
        if tree is None:
            report.failed.append(unit.display_name)
            continue
        if context is not None and context.truncated:
            report.truncated.append(tree.name)
        trees.append(tree)
        report.parsed += 1
    report.nodes_built = sum(count_nodes(tree.root) for tree in trees if tree.root is not None)
    logger.info(
        "parsed=%s failed=%s no_content=%s nodes=%s",
        report.parsed,
        len(report.failed),
        report.empty,
        report.nodes_built,
    )
    return sorted(trees, key=lambda tree: tree.name)


UnitPass = Callable[[EventTree], None]


def _run_per_unit(trees: list[EventTree], unit_pass: UnitPass, *, stage: str, report: RunReport) -> list[EventTree]:
    """Apply one stage to every tree; a unit that raises is logged and dropped."""
    kept: list[EventTree] = []
    for tree in trees:
        if tree.root is None:
            kept.append(tree)
            continue
        try:
            unit_pass(tree)
        except Exception:
            logger.exception("unit=%s failed during %s, dropping it", tree.name, stage)
            report.failed.append(tree.name)
            continue
        kept.append(tree)
    return kept


def _structure_passes(tree: EventTree, *, settings: Settings, report: RunReport) -> None:
    root = tree.root
    if settings.filter_default_nodes_enabled and tree.name in settings.default_node_blacklist:
        report.count("default_nodes_filtered", filter_default_nodes(root))
    if settings.separate_choices_from_effects_enabled:
        stats = separate_choices_from_effects(root, allocate_id=tree.allocate_id, unit_name=tree.name)
        report.count("choices_separated", stats.separated)
    report.count("random_keyword_labels", normalize_add_keyword_random_choice_labels(root))


def _optimization_passes(tree: EventTree, *, settings: Settings, tuning: UnitTuning, report: RunReport) -> None:
    root = tree.root
    if settings.dedup_iterations > 0 and tree.name not in settings.dedup_unit_blacklist:
        options = DedupOptions(
            iterations=settings.dedup_iterations,
            min_subtree_size=settings.dedup_min_subtree_size,
            signature_depth=settings.dedup_signature_depth,
        )
        stats = deduplicate_tree(root, options, unit_name=tree.name)
        report.count("dedup_duplicates", stats.duplicates_found)
        report.count("dedup_nodes_removed", stats.nodes_removed)
    hub_stats = optimize_hub_patterns(
        root,
        min_choices=settings.hub_pattern_min_choices,
        enabled=settings.hub_pattern_optimization_enabled and tree.name not in settings.hub_pattern_unit_blacklist,
        unit_name=tree.name,
    )
    report.count("hub_refs_created", hub_stats.refs_created)
    if settings.normalize_refs_pointing_to_choice_nodes_enabled:
        report.count("choice_refs_rewritten", normalize_refs_pointing_to_choice_nodes(root, unit_name=tree.name))
    if settings.normalize_refs_pointing_to_combat_nodes_enabled:
        report.count("combat_refs_rewritten", normalize_refs_pointing_to_combat_nodes(root, unit_name=tree.name))
    if settings.promote_shallow_dialogue_menu_hub_enabled:
        promotion = promote_shallow_dialogue_menu_hub(root, tuning.dialogue_menu(tree.name), unit_name=tree.name)
        report.count("hubs_promoted", 1 if promotion is not None else 0)
    if settings.convert_sibling_and_cousin_refs_enabled:
        conversions = convert_sibling_and_cousin_refs(
            root,
            skip_cousins=tree.name in settings.cousin_ref_blacklist,
            skip_complex_cousins=tree.name in settings.complex_cousin_ref_blacklist,
        )
        report.count("ref_children_conversions", conversions.total)


def _alteration_pass(tree: EventTree, *, alterations: dict[str, list[Alteration]], report: RunReport) -> None:
    unit_alterations = alterations.get(tree.name)
    if not unit_alterations:
        return
    applied = apply_alterations(tree.root, unit_alterations, allocate_id=tree.allocate_id, unit_name=tree.name)
    report.count("alterations_applied", applied)


def _cleanup_passes(
    tree: EventTree,
    *,
    settings: Settings,
    id_to_name: dict[int, str] | None,
    report: RunReport,
) -> None:
    if settings.clean_up_random_values_enabled:
        report.count("random_values_cleaned", clean_up_random_values(tree.root))
    if id_to_name:
        report.count("card_ids_replaced", replace_card_ids(tree.root, id_to_name))


def _default_name_lookup(settings: Settings) -> NameLookup:
    async def lookup() -> dict[int, str]:
        return await fetch_id_to_name(
            cards_url=settings.cards_lookup_url,
            talents_url=settings.talents_lookup_url,
            timeout_s=settings.lookup_timeout_s,
        )

    return lookup


async def run_pipeline(
    units: list[UnitRecord],
    *,
    engine_factory: StoryEngineFactory,
    settings: Settings,
    tuning: UnitTuning | None = None,
    alterations: dict[str, list[Alteration]] | None = None,
    name_lookup: NameLookup | None = None,
    skip_lookup: bool = False,
) -> tuple[list[EventTree], RunReport]:
    """Build every unit and run the post-processing passes in their fixed order.

    Raises `BytecodeParseError` or `NameLookupError`; every other failure is
    logged and contained to the unit or branch it happened in.
    """
    report = RunReport()
    tuning = tuning or default_unit_tuning()
    trees = build_trees(units, engine_factory=engine_factory, settings=settings, tuning=tuning, report=report)
    trees = _run_per_unit(
        trees,
        partial(_structure_passes, settings=settings, report=report),
        stage="structure passes",
        report=report,
    )

    id_to_name: dict[int, str] | None = None
    if settings.replace_card_ids_enabled and not skip_lookup:
        lookup = name_lookup or _default_name_lookup(settings)
        id_to_name = await lookup()

    trees = _run_per_unit(
        trees,
        partial(_optimization_passes, settings=settings, tuning=tuning, report=report),
        stage="optimization passes",
        report=report,
    )
    if settings.apply_alterations_enabled:
        trees = _run_per_unit(
            trees,
            partial(_alteration_pass, alterations=alterations or {}, report=report),
            stage="alterations",
            report=report,
        )
    if settings.check_invalid_refs_enabled:
        report.invalid_refs = check_invalid_refs(trees)
    trees = _run_per_unit(
        trees,
        partial(_cleanup_passes, settings=settings, id_to_name=id_to_name, report=report),
        stage="cleanup passes",
        report=report,
    )

    report.nodes_final = sum(count_nodes(tree.root) for tree in trees if tree.root is not None)
    for pass_name, amount in report.pass_counts.items():
        logger.info("%s: %s", pass_name, amount)
    logger.info("final node count: %s (built %s)", report.nodes_final, report.nodes_built)
    return trees, report
