from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import partial
from typing import Any

from eventmap.modules.builder.context import BuildContext, HubSnapshot
from eventmap.modules.builder.knots import build_branching_node, detect_branching_command
from eventmap.modules.content.extractor import (
    ChoiceMetadata,
    ExtractedContent,
    determine_node_type,
    extract_choice_metadata,
    extract_effects,
)
from eventmap.modules.content.random_values import RANDOM_KEYWORD, normalize_random_effects_in_line
from eventmap.modules.ink.engine import StoryEngine, checkout, choice_text, current_location
from eventmap.modules.splitter.engine import split_combat_segment, split_dialogue_on_effects
from eventmap.modules.tree.model import (
    DEFAULT_CHOICE_LABEL,
    DEFAULT_CHOICE_REQUIREMENT,
    Node,
    NodeType,
    make_node,
)

logger = logging.getLogger(__name__)

MAX_DEPTH_TEXT = "[Max depth reached]"
END_TEXT = "[End]"
CHOICE_POINT_TEXT = "[Choice point]"


@dataclass(slots=True)
class Segment:
    raw_text: str = ""
    continue_count: int = 0

    @property
    def num_continues(self) -> int:
        return max(0, self.continue_count - 1)


@dataclass(slots=True)
class PendingChoice:
    index: int
    metadata: ChoiceMetadata
    snapshot: Any


@dataclass(slots=True)
class NodeFrame:
    """Per-node facts shared by the child-building helpers."""

    node_id: int
    depth: int
    state_key: str
    is_hub: bool
    ancestor_texts: dict[str, int] = field(default_factory=dict)


class TreeBuilder:
    """Explore every branch of one unit's story and emit its raw node tree.

    Shallow levels are explored sibling-first so every top-level branch starts
    before a deep one can drain the node budget; deeper levels are plain
    depth-first. Every VM mutation happens inside `checkout`, so the engine is
    back at the caller's state whenever a helper returns or raises.
    """

    def __init__(self, engine: StoryEngine, context: BuildContext) -> None:
        self.engine = engine
        self.context = context
        self._extract = partial(
            extract_effects,
            function_definitions=context.analysis.function_definitions,
            function_calls=context.analysis.function_calls,
        )

    def build(self) -> Node | None:
        return self._build_node(depth=0, edge="", ancestor_texts={})

    def _drain(self) -> Segment:
        lines: list[str] = []
        count = 0
        try:
            while self.engine.can_continue:
                line = self.engine.continue_step()
                count += 1
                if line and line.strip():
                    lines.append(normalize_random_effects_in_line(line, self.context.analysis.random_vars).strip())
        except Exception as exc:
            logger.warning("unit=%s story runtime error while continuing: %s", self.context.unit_name, exc)
        return Segment(raw_text="\n".join(lines), continue_count=count)

    def _ref_node(
        self,
        *,
        node_id: int,
        node_type: NodeType,
        content: ExtractedContent,
        num_continues: int,
        ref: int,
    ) -> Node:
        return make_node(
            node_id=node_id,
            node_type=node_type,
            text=content.cleaned_text,
            effects=content.effects,
            num_continues=num_continues,
            ref=ref,
        )

    def _build_node(self, *, depth: int, edge: str, ancestor_texts: dict[str, int]) -> Node | None:
        ctx = self.context
        limits = ctx.limits
        ctx.enter_depth(depth)

        if depth > limits.max_depth:
            logger.warning("unit=%s reached max depth (%s), truncating branch", ctx.unit_name, limits.max_depth)
            ctx.node_total += 1
            ctx.max_depth_hits += 1
            return make_node(node_id=ctx.allocate_id(), node_type=NodeType.END, text=MAX_DEPTH_TEXT)

        segment = self._drain()
        choices = [extract_choice_metadata(choice_text(choice)) for choice in (self.engine.current_choices or [])]
        node_type = determine_node_type(segment.raw_text, is_leaf=not choices)
        content = self._extract(segment.raw_text)
        cleaned = content.cleaned_text
        labels = [choice.cleaned_text for choice in choices]
        location = current_location(self.engine) or f"text:{cleaned}"
        state_key = f"{'|'.join(sorted(labels))}@{location}"
        state_hash = f"{edge}_{state_key}"
        randomized = RANDOM_KEYWORD in cleaned

        if limits.text_loop_detection and cleaned and not randomized and cleaned in ancestor_texts:
            ctx.node_total += 1
            return self._ref_node(
                node_id=ctx.allocate_id(),
                node_type=node_type,
                content=content,
                num_continues=segment.num_continues,
                ref=ancestor_texts[cleaned],
            )

        if limits.choice_and_path_loop_detection and not randomized and state_hash in ctx.state_to_node_id:
            ctx.node_total += 1
            return self._ref_node(
                node_id=ctx.allocate_id(),
                node_type=node_type,
                content=content,
                num_continues=segment.num_continues,
                ref=ctx.state_to_node_id[state_hash],
            )

        if ctx.node_total >= limits.node_budget(depth):
            phase = "sibling-first" if depth < limits.sibling_first_depth else "depth-first"
            logger.warning(
                "unit=%s reached %s node budget (%s) at depth %s, dropping branch: text=%r choices=%s",
                ctx.unit_name,
                phase,
                limits.node_budget(depth),
                depth,
                cleaned[:50],
                len(choices),
            )
            ctx.truncated_branches += 1
            return None

        if not choices and ctx.analysis.knots:
            command = detect_branching_command(content.effects)
            if command is not None:
                logger.info(
                    "unit=%s expanding %s into %s knots",
                    ctx.unit_name,
                    command,
                    len(ctx.analysis.knots),
                )
                return build_branching_node(command, content.effects, ctx)

        if not cleaned and not choices:
            ctx.node_total += 1
            leaf_type = NodeType.COMBAT if node_type == NodeType.COMBAT else NodeType.END
            return make_node(node_id=ctx.allocate_id(), node_type=leaf_type, effects=content.effects)

        node_id = ctx.allocate_id()
        ctx.node_total += 1
        if limits.choice_and_path_loop_detection:
            ctx.state_to_node_id.setdefault(state_hash, node_id)
        child_texts = ancestor_texts
        if limits.text_loop_detection and cleaned and not randomized:
            child_texts = {**ancestor_texts, cleaned: node_id}

        if not choices:
            return make_node(
                node_id=node_id,
                node_type=NodeType.END if node_type == NodeType.DIALOGUE else node_type,
                text=cleaned or END_TEXT,
                effects=content.effects,
                num_continues=segment.num_continues,
            )

        menu = ctx.dialogue_menu
        is_hub = menu is not None and menu.is_hub_text(cleaned)
        if is_hub:
            self._register_hub(node_id, labels)

        signature = None
        convergence = ctx.convergence
        if (
            convergence is not None
            and not is_hub
            and not convergence.skips(cleaned)
            and cleaned
            and len(choices) >= limits.path_convergence_min_choices
        ):
            signature = f"{cleaned}::{'|'.join(sorted(labels))}"
            if signature in ctx.convergence_states:
                return self._ref_node(
                    node_id=node_id,
                    node_type=node_type,
                    content=content,
                    num_continues=segment.num_continues,
                    ref=ctx.convergence_states[signature],
                )

        frame = NodeFrame(
            node_id=node_id,
            depth=depth,
            state_key=state_key,
            is_hub=is_hub,
            ancestor_texts=child_texts,
        )
        if depth < limits.sibling_first_depth:
            children = self._explore_sibling_first(choices, frame)
        else:
            children = self._explore_depth_first(choices, frame)

        final_text: str | None = cleaned
        final_effects = content.effects
        final_children = children
        final_continues: int | None = segment.num_continues
        if node_type == NodeType.COMBAT and segment.raw_text:
            split = split_combat_segment(
                segment.raw_text,
                effects=content.effects,
                children=children,
                extract=self._extract,
                allocate_id=ctx.allocate_id,
            )
            if split.created is not None:
                ctx.node_total += 1
            final_text, final_effects, final_children = split.text, split.effects, split.children
        elif node_type == NodeType.DIALOGUE and limits.split_dialogue_on_effects:
            split = split_dialogue_on_effects(
                segment.raw_text,
                cleaned_text=cleaned,
                effects=content.effects,
                continue_count=segment.continue_count,
                children=children,
                extract=self._extract,
                allocate_id=ctx.allocate_id,
            )
            if split.created is not None:
                ctx.node_total += 1
            final_text, final_effects, final_children = split.text, split.effects, split.children
            final_continues = split.num_continues

        snapshot = ctx.hub_snapshot
        if (
            snapshot is not None
            and final_children
            and node_id > snapshot.hub_id
            and self._matches_hub(final_children, snapshot)
        ):
            return make_node(
                node_id=node_id,
                node_type=NodeType.DIALOGUE if node_type == NodeType.CHOICE else node_type,
                text=final_text or CHOICE_POINT_TEXT,
                effects=final_effects,
                num_continues=final_continues,
                ref=snapshot.hub_id,
            )

        if signature is not None and final_children:
            ctx.convergence_states[signature] = node_id

        if node_type == NodeType.COMBAT and not final_text:
            node_text = None
        else:
            node_text = final_text or CHOICE_POINT_TEXT
        return make_node(
            node_id=node_id,
            node_type=node_type,
            text=node_text,
            effects=final_effects,
            num_continues=final_continues,
            children=final_children,
        )

    def _register_hub(self, node_id: int, labels: list[str]) -> None:
        ctx = self.context
        menu = ctx.dialogue_menu
        if ctx.hub_id is None:
            ctx.hub_id = node_id
        if menu is None or not menu.uses_threshold or ctx.hub_snapshot is not None:
            return
        hub_labels: list[str] = []
        for label in labels:
            if label and not menu.is_exit(label) and label not in hub_labels:
                hub_labels.append(label)
        if hub_labels:
            ctx.hub_snapshot = HubSnapshot(
                hub_id=node_id,
                choice_labels=hub_labels,
                threshold=float(menu.hubChoiceMatchThreshold),
            )
            logger.debug("unit=%s captured hub snapshot at id=%s: %s", ctx.unit_name, node_id, hub_labels)

    def _explore_sibling_first(self, choices: list[ChoiceMetadata], frame: NodeFrame) -> list[Node]:
        ctx = self.context
        pending: list[PendingChoice] = []
        for index, metadata in enumerate(choices):
            with checkout(self.engine):
                try:
                    self.engine.choose_choice(index)
                    pending.append(PendingChoice(index=index, metadata=metadata, snapshot=self.engine.state.snapshot()))
                except Exception as exc:
                    logger.warning("unit=%s error selecting choice %s: %s", ctx.unit_name, index, exc)

        children: list[Node] = []
        for item in pending:
            with checkout(self.engine):
                try:
                    self.engine.state.restore(item.snapshot)
                    child = self._build_child(item.index, item.metadata, frame)
                except Exception as exc:
                    logger.warning("unit=%s error building choice %s: %s", ctx.unit_name, item.index, exc)
                    continue
            if child is not None:
                children.append(child)
        return children

    def _explore_depth_first(self, choices: list[ChoiceMetadata], frame: NodeFrame) -> list[Node]:
        ctx = self.context
        children: list[Node] = []
        for index, metadata in enumerate(choices):
            with checkout(self.engine):
                try:
                    self.engine.choose_choice(index)
                    child = self._build_child(index, metadata, frame)
                except Exception as exc:
                    logger.warning("unit=%s error exploring choice %s: %s", ctx.unit_name, index, exc)
                    continue
            if child is not None:
                children.append(child)
        return children

    def _build_child(self, index: int, metadata: ChoiceMetadata, frame: NodeFrame) -> Node | None:
        ctx = self.context
        menu = ctx.dialogue_menu
        edge = f"{frame.state_key}_c{index}"
        if frame.is_hub and menu is not None and not menu.uses_threshold and not menu.is_exit(metadata.cleaned_text):
            with checkout(self.engine):
                peek = self._drain()
            peeked = self._extract(peek.raw_text)
            if not menu.is_exit(peeked.cleaned_text):
                ctx.node_total += 1
                return make_node(
                    node_id=ctx.allocate_id(),
                    node_type=determine_node_type(peeked.cleaned_text, is_leaf=False),
                    text=peeked.cleaned_text,
                    choice_label=metadata.cleaned_text,
                    requirements=metadata.requirements,
                    effects=peeked.effects,
                    num_continues=peek.num_continues,
                    ref=frame.node_id,
                )

        child = self._build_node(depth=frame.depth + 1, edge=edge, ancestor_texts=frame.ancestor_texts)
        if child is None:
            return None
        child.choice_label = metadata.cleaned_text
        if metadata.requirements:
            child.requirements = list(metadata.requirements)
        elif not child.requirements and metadata.cleaned_text == DEFAULT_CHOICE_LABEL:
            child.requirements = [DEFAULT_CHOICE_REQUIREMENT]

        snapshot = ctx.hub_snapshot
        if snapshot is not None and child.id != snapshot.hub_id:
            self._fold_hub_matches(child.children, snapshot)
        return child

    def _fold_hub_matches(self, children: list[Node], snapshot: HubSnapshot) -> None:
        """Turn descendants that re-offer the hub's menu into refs back to the hub."""
        stack = list(children)
        while stack:
            node = stack.pop()
            if node.children and node.id != snapshot.hub_id and self._matches_hub(node.children, snapshot):
                node.ref = snapshot.hub_id
                node.children = []
                continue
            stack.extend(node.children)

    def _matches_hub(self, children: list[Node], snapshot: HubSnapshot) -> bool:
        ctx = self.context
        labels = {child.choice_label for child in children if child.choice_label}
        if not labels:
            return False
        if snapshot.threshold > 100 and not ctx.threshold_warned:
            ctx.threshold_warned = True
            logger.warning(
                "unit=%s hubChoiceMatchThreshold (%s%%) is above 100%% and will never match",
                ctx.unit_name,
                snapshot.threshold,
            )
        matched = sum(1 for label in snapshot.choice_labels if label in labels)
        if matched / len(snapshot.choice_labels) * 100 >= snapshot.threshold:
            return True
        menu = ctx.dialogue_menu
        if menu is not None and menu.passWhenOnlyExitPatternsAvailable:
            return all(menu.is_exit(label) for label in labels) and len(labels) == len(menu.menuExitPatterns)
        return False
