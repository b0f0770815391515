"""Porcelain actions: one primitive command each, verified against later snapshots.

Every action follows the same shape: resolve the target, record a baseline and
the current tick, send exactly one command, then wait until either a chat
message newer than that tick explains a failure or the action's own success
signal appears in the snapshot. Expected failures come back as results.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from typing import Any, Callable

from tickbot.adapters.channel import CommandAck, CommandChannel
from tickbot.adapters.state_source import StateSnapshotSource
from tickbot.classifier import FailureClassifier, MessageRule
from tickbot.config import Settings
from tickbot.config import settings as default_settings
from tickbot.journal import ActionReporter
from tickbot.models import NearbyLoc, WorldSnapshot
from tickbot.movement import MovementPlanner
from tickbot.resolver import EntityResolver
from tickbot.results import ActionResult, EatResult, FailureReason, SkillResult
from tickbot.targets import Pattern, TargetLike, as_target, describe
from tickbot.waiter import ConditionTimeout, ConditionWaiter, Predicate, TickCooldown, evaluate

DOOR_PATTERN = Pattern(re.compile(r"door|gate", re.IGNORECASE))
TREE_PATTERN = Pattern(re.compile(r"^tree$", re.IGNORECASE))
LOGS_PATTERN = Pattern(re.compile(r"logs", re.IGNORECASE))
TINDERBOX_PATTERN = Pattern(re.compile(r"tinderbox", re.IGNORECASE))

_REASON_TEXT: dict[FailureReason, str] = {
    FailureReason.OUT_OF_REACH: "Cannot reach {subject} - obstacle in the way",
    FailureReason.CANT_REACH: "Cannot reach {subject} - path blocked",
    FailureReason.ALREADY_IN_COMBAT: "{subject} is already in combat",
    FailureReason.INVENTORY_FULL: "Inventory is full",
    FailureReason.NO_RUNES: "Not enough runes to cast on {subject}",
    FailureReason.NO_TOOL: "No tool to use on {subject}",
    FailureReason.BAD_LOCATION: "Cannot use {subject} here (bad location)",
    FailureReason.REQUIREMENT_NOT_MET: "Requirements not met for {subject}",
    FailureReason.REJECTED: "{subject} was rejected",
}


class VerifiedActionExecutor:
    """Wraps primitive commands with pre/post checks and failure classification."""

    def __init__(
        self,
        channel: CommandChannel,
        source: StateSnapshotSource,
        waiter: ConditionWaiter,
        resolver: EntityResolver,
        movement: MovementPlanner,
        *,
        settings: Settings | None = None,
        classifier: FailureClassifier | None = None,
        reporter: ActionReporter | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._channel = channel
        self._source = source
        self._waiter = waiter
        self._resolver = resolver
        self._movement = movement
        self._settings = settings or default_settings
        self._classifier = classifier or FailureClassifier()
        self._reporter = reporter or ActionReporter()
        self._logger = logger or logging.getLogger("tickbot.actions")

    async def dismiss_blocking_ui(self) -> ActionResult:
        """Click through any open dialog so the next command is not swallowed."""
        return self._finish("dismiss_blocking_ui", await self._dismiss_dialogs())

    async def navigate_dialog(self, choices: Sequence[int | str | re.Pattern]) -> ActionResult:
        """Click dialog options in order, by index or by option-text pattern."""
        for choice in choices:
            snapshot = self._source.get_state()
            if snapshot is None or not snapshot.dialog.is_open:
                return self._finish(
                    "navigate_dialog", ActionResult.fail(FailureReason.NOT_OPEN, "Dialog closed before all choices")
                )

            if isinstance(choice, int):
                option_index = choice
            else:
                pattern = Pattern(choice)
                option = next((o for o in snapshot.dialog.options if pattern.matches(o.text)), None)
                if option is None:
                    return self._finish(
                        "navigate_dialog",
                        ActionResult.fail(FailureReason.NO_OPTION, f"No dialog option matching {pattern}"),
                    )
                option_index = option.index

            await self._channel.send_click_dialog(option_index)
            await self._waiter.wait_for_next_tick(self._settings.state_change_timeout_seconds)

        return self._finish("navigate_dialog", ActionResult.ok(f"Selected {len(choices)} dialog option(s)"))

    async def attack_npc(self, target: TargetLike, timeout: float | None = None) -> ActionResult:
        cfg = self._settings
        npc = self._resolver.resolve_npc(as_target(target))
        if npc is None:
            return self._finish(
                "attack",
                ActionResult.fail(FailureReason.TARGET_NOT_FOUND, f"NPC not found: {describe(as_target(target))}"),
            )

        if npc.option("attack") is None:
            return self._finish(
                "attack", ActionResult.fail(FailureReason.NO_OPTION, f"No attack option on {npc.name}", npc)
            )

        if npc.distance > cfg.attack_approach_range:
            walk = await self._movement.walk_to(npc.x, npc.z, int(cfg.melee_range))
            if not walk.success:
                return self._finish(
                    "attack",
                    ActionResult.fail(FailureReason.WALK_FAILED, f"Could not walk to {npc.name}: {walk.message}", npc),
                )
            refreshed = self._resolver.refresh_npc(npc)
            if refreshed is None:
                return self._finish(
                    "attack",
                    ActionResult.fail(FailureReason.NO_LONGER_VISIBLE, f"{npc.name} is no longer visible", npc),
                )
            npc = refreshed

        attack_option = npc.option("attack")
        if attack_option is None:
            return self._finish(
                "attack", ActionResult.fail(FailureReason.NO_OPTION, f"No attack option on {npc.name}", npc)
            )

        start_tick = self._tick()
        ack = await self._channel.send_interact_npc(npc.index, attack_option.op_index)
        if not ack.success:
            return self._finish("attack", self._rejected_command(ack, npc))

        def engaged(snapshot: WorldSnapshot) -> bool:
            current = next((n for n in snapshot.nearby_npcs if n.index == npc.index), None)
            return current is None or current.distance <= cfg.melee_range

        try:
            _, rule = await self.await_outcome("attack", start_tick, engaged, timeout or cfg.attack_timeout_seconds)
        except ConditionTimeout:
            return self._finish(
                "attack", ActionResult.fail(FailureReason.TIMEOUT, f"Timeout waiting to attack {npc.name}", npc)
            )

        if rule is not None:
            return self._finish("attack", self._rule_result(rule, npc.name, npc))
        return self._finish("attack", ActionResult.ok(f"Attacking {npc.name}", npc))

    async def cast_spell_on_npc(
        self, target: TargetLike, spell_component: int, timeout: float | None = None
    ) -> SkillResult:
        npc = self._resolver.resolve_npc(as_target(target))
        if npc is None:
            return self._finish(
                "cast",
                SkillResult.fail(FailureReason.TARGET_NOT_FOUND, f"NPC not found: {describe(as_target(target))}"),
            )

        start = self._source.get_state()
        if start is None:
            return self._finish("cast", SkillResult.fail(FailureReason.NO_STATE, "No game state available"))
        start_xp = start.experience("Magic")

        ack = await self._channel.send_spell_on_npc(npc.index, spell_component)
        if not ack.success:
            return self._finish("cast", SkillResult.fail(FailureReason.COMMAND_REJECTED, ack.message, npc))

        try:
            snapshot, rule = await self.await_outcome(
                "cast",
                start.tick,
                lambda s: s.experience("Magic") > start_xp,
                timeout or self._settings.cast_timeout_seconds,
            )
        except ConditionTimeout:
            # No XP and no refusal within the window: the spell landed but missed.
            return self._finish("cast", SkillResult.ok(f"Splashed on {npc.name} (timeout)", npc, hit=False))

        if rule is not None:
            return self._finish("cast", self._rule_result(rule, npc.name, npc, result_type=SkillResult))

        xp_gained = snapshot.experience("Magic") - start_xp
        return self._finish(
            "cast",
            SkillResult.ok(f"Hit {npc.name} for {xp_gained} Magic XP", npc, xp_gained=xp_gained, hit=True),
        )

    async def set_combat_style(self, style: int) -> ActionResult:
        snapshot = self._source.get_state()
        if snapshot is None or snapshot.player is None:
            return self._finish("combat_style", ActionResult.fail(FailureReason.NO_STATE, "No player state"))
        if snapshot.player.combat_style == style:
            return self._finish("combat_style", ActionResult.ok(f"Combat style already {style}", style))

        ack = await self._channel.send_set_combat_style(style)
        if not ack.success:
            return self._finish("combat_style", self._rejected_command(ack, style))

        try:
            await self._waiter.wait_for_condition(
                lambda s: s.player is not None and s.player.combat_style == style,
                self._settings.combat_style_timeout_seconds,
            )
        except ConditionTimeout:
            return self._finish(
                "combat_style", ActionResult.fail(FailureReason.TIMEOUT, f"Combat style did not change to {style}")
            )
        return self._finish("combat_style", ActionResult.ok(f"Combat style set to {style}", style))

    async def pickup_item(self, target: TargetLike) -> ActionResult:
        item = self._resolver.resolve_ground_item(as_target(target))
        if item is None:
            return self._finish(
                "pickup", ActionResult.fail(FailureReason.TARGET_NOT_FOUND, "Item not found on ground")
            )

        before = self._source.get_state()
        count_before = before.count_of(item.id) if before else 0
        start_tick = before.tick if before else 0

        ack = await self._channel.send_pickup(item.x, item.z, item.id)
        if not ack.success:
            return self._finish("pickup", self._rejected_command(ack, item))

        try:
            snapshot, rule = await self.await_outcome(
                "pickup",
                start_tick,
                lambda s: s.count_of(item.id) > count_before,
                self._settings.pickup_timeout_seconds,
            )
        except ConditionTimeout:
            return self._finish("pickup", ActionResult.fail(FailureReason.TIMEOUT, "Timed out waiting for pickup", item))

        if rule is not None:
            return self._finish("pickup", self._rule_result(rule, f"{item.name} at ({item.x}, {item.z})", item))

        picked = next((i for i in snapshot.inventory if i.id == item.id), None)
        return self._finish("pickup", ActionResult.ok(f"Picked up {item.name}", picked))

    async def open_door(self, target: TargetLike = None) -> ActionResult:
        cfg = self._settings
        resolved = as_target(target, DOOR_PATTERN)
        name_pattern = resolved if isinstance(resolved, Pattern) else DOOR_PATTERN
        door = self._resolver.resolve_loc(resolved)
        if door is None:
            return self._finish("door", ActionResult.fail(FailureReason.TARGET_NOT_FOUND, "No door found nearby"))

        if door.option(r"^open$") is None:
            return self._finish("door", self._door_without_open(door))

        if door.distance > cfg.door_interaction_range:
            walk = await self._movement.walk_to(door.x, door.z)
            if not walk.success:
                return self._finish(
                    "door",
                    ActionResult.fail(FailureReason.WALK_FAILED, f"Could not walk to {door.name}: {walk.message}", door),
                )
            refreshed = self._resolver.refresh_loc(door, name_pattern)
            if refreshed is None:
                return self._finish(
                    "door",
                    ActionResult(
                        True,
                        f"{door.name} is no longer visible (may have been opened)",
                        FailureReason.NO_LONGER_VISIBLE,
                        door,
                    ),
                )
            if refreshed.option(r"^open$") is None:
                return self._finish("door", self._door_without_open(refreshed))
            door = refreshed

        open_option = door.option(r"^open$")
        start_tick = self._tick()
        ack = await self._channel.send_interact_loc(door.x, door.z, door.id, open_option.op_index)
        if not ack.success:
            return self._finish("door", self._rejected_command(ack, door))

        def door_now(snapshot: WorldSnapshot) -> NearbyLoc | None:
            return next(
                (
                    loc
                    for loc in snapshot.nearby_locs
                    if loc.x == door.x and loc.z == door.z and name_pattern.matches(loc.name)
                ),
                None,
            )

        def opened(snapshot: WorldSnapshot) -> bool:
            current = door_now(snapshot)
            if current is None:
                return True
            return current.option(r"^close$") is not None and current.option(r"^open$") is None

        try:
            snapshot, rule = await self.await_outcome("door", start_tick, opened, cfg.door_timeout_seconds)
        except ConditionTimeout:
            return self._finish(
                "door", ActionResult.fail(FailureReason.TIMEOUT, f"Timeout waiting for {door.name} to open", door)
            )

        if rule is not None:
            return self._finish("door", self._rule_result(rule, f"{door.name} - still blocked", door))
        return self._finish("door", ActionResult.ok(f"Opened {door.name}", door_now(snapshot) or door))

    async def chop_tree(self, target: TargetLike = None) -> ActionResult:
        await self._dismiss_dialogs()

        tree = self._resolver.resolve_loc(as_target(target, TREE_PATTERN))
        if tree is None:
            return self._finish("chop", ActionResult.fail(FailureReason.TARGET_NOT_FOUND, "No tree found"))

        chop_option = tree.option("chop")
        if chop_option is None:
            return self._finish("chop", ActionResult.fail(FailureReason.NO_OPTION, f"No chop option on {tree.name}", tree))

        before = self._source.get_state()
        inventory_before = len(before.inventory) if before else 0
        start_tick = before.tick if before else 0

        ack = await self._channel.send_interact_loc(tree.x, tree.z, tree.id, chop_option.op_index)
        if not ack.success:
            return self._finish("chop", self._rejected_command(ack, tree))

        def chopped(snapshot: WorldSnapshot) -> bool:
            tree_gone = not any(
                loc.x == tree.x and loc.z == tree.z and loc.id == tree.id for loc in snapshot.nearby_locs
            )
            return len(snapshot.inventory) > inventory_before or tree_gone

        try:
            snapshot, rule = await self.await_outcome(
                "chop", start_tick, chopped, self._settings.chop_timeout_seconds
            )
        except ConditionTimeout:
            return self._finish("chop", ActionResult.fail(FailureReason.TIMEOUT, "Timed out waiting for tree chop", tree))

        if rule is not None:
            return self._finish("chop", self._rule_result(rule, tree.name, tree))

        logs = self._resolver.resolve_inventory_item(LOGS_PATTERN)
        return self._finish("chop", ActionResult.ok("Chopped tree", logs))

    async def use_item_on_loc(self, item_target: TargetLike, loc_target: TargetLike) -> ActionResult:
        """Use an inventory item on a scenery object (e.g. raw food on a range)."""
        item = self._resolver.resolve_inventory_item(as_target(item_target))
        if item is None:
            return self._finish(
                "use_on_loc",
                ActionResult.fail(FailureReason.TARGET_NOT_FOUND, f"Item not found: {describe(as_target(item_target))}"),
            )
        loc = self._resolver.resolve_loc(as_target(loc_target))
        if loc is None:
            return self._finish(
                "use_on_loc",
                ActionResult.fail(FailureReason.TARGET_NOT_FOUND, f"Object not found: {describe(as_target(loc_target))}"),
            )

        before = self._source.get_state()
        start_tick = before.tick if before else 0
        count_before = before.count_of(item.id) if before else 0
        xp_before = sum(skill.experience for skill in before.skills) if before else 0
        dialog_before = before.dialog.is_open if before else False

        ack = await self._channel.send_use_item_on_loc(item.slot, loc.x, loc.z, loc.id)
        if not ack.success:
            return self._finish("use_on_loc", self._rejected_command(ack, loc))

        def progressed(snapshot: WorldSnapshot) -> bool:
            return (
                snapshot.count_of(item.id) < count_before
                or (snapshot.dialog.is_open and not dialog_before)
                or sum(skill.experience for skill in snapshot.skills) > xp_before
            )

        try:
            _, rule = await self.await_outcome(
                "use_on_loc", start_tick, progressed, self._settings.use_on_loc_timeout_seconds
            )
        except ConditionTimeout:
            return self._finish(
                "use_on_loc",
                ActionResult.fail(FailureReason.TIMEOUT, f"Nothing happened using {item.name} on {loc.name}", loc),
            )

        if rule is not None:
            return self._finish("use_on_loc", self._rule_result(rule, f"{item.name} on {loc.name}", loc))
        return self._finish("use_on_loc", ActionResult.ok(f"Used {item.name} on {loc.name}", loc))

    async def burn_logs(self, logs_target: TargetLike = None) -> SkillResult:
        await self._dismiss_dialogs()

        tinderbox = self._resolver.resolve_inventory_item(TINDERBOX_PATTERN)
        if tinderbox is None:
            return self._finish(
                "burn", SkillResult.fail(FailureReason.TARGET_NOT_FOUND, "No tinderbox in inventory")
            )
        logs = self._resolver.resolve_inventory_item(as_target(logs_target, LOGS_PATTERN))
        if logs is None:
            return self._finish("burn", SkillResult.fail(FailureReason.TARGET_NOT_FOUND, "No logs in inventory"))

        before = self._source.get_state()
        xp_before = before.experience("Firemaking") if before else 0
        start_tick = before.tick if before else 0

        ack = await self._channel.send_use_item_on_item(tinderbox.slot, logs.slot)
        if not ack.success:
            return self._finish("burn", SkillResult.fail(FailureReason.COMMAND_REJECTED, ack.message, logs))

        cooldown = TickCooldown(self._settings.dialog_cooldown_ticks)

        async def lit(snapshot: WorldSnapshot) -> bool:
            if snapshot.experience("Firemaking") > xp_before:
                return True
            if snapshot.dialog.is_open and cooldown.ready(snapshot.tick):
                await self._channel.send_click_dialog(0)
            return False

        try:
            snapshot, rule = await self.await_outcome(
                "burn", start_tick, lit, self._settings.burn_timeout_seconds
            )
        except ConditionTimeout:
            return self._finish("burn", SkillResult.fail(FailureReason.TIMEOUT, "Timed out waiting for fire", logs))

        xp_gained = snapshot.experience("Firemaking") - xp_before
        if rule is not None and xp_gained <= 0:
            return self._finish("burn", self._rule_result(rule, logs.name, logs, result_type=SkillResult))
        return self._finish("burn", SkillResult.ok("Burned logs", logs, xp_gained=xp_gained))

    async def equip_item(self, target: TargetLike) -> ActionResult:
        item = self._resolver.resolve_inventory_item(as_target(target))
        if item is None:
            return self._finish(
                "equip", ActionResult.fail(FailureReason.TARGET_NOT_FOUND, f"Item not found: {describe(as_target(target))}")
            )

        equip_option = item.option("wield|wear|equip")
        if equip_option is None:
            return self._finish(
                "equip", ActionResult.fail(FailureReason.NO_OPTION, f"No equip option on {item.name}", item)
            )

        start_tick = self._tick()
        ack = await self._channel.send_use_item(item.slot, equip_option.op_index)
        if not ack.success:
            return self._finish("equip", self._rejected_command(ack, item))

        try:
            _, rule = await self.await_outcome(
                "equip",
                start_tick,
                lambda s: not any(i.slot == item.slot and i.id == item.id for i in s.inventory),
                self._settings.equip_timeout_seconds,
            )
        except ConditionTimeout:
            return self._finish("equip", ActionResult.fail(FailureReason.TIMEOUT, f"Failed to equip {item.name}", item))

        if rule is not None:
            return self._finish("equip", self._rule_result(rule, item.name, item))
        return self._finish("equip", ActionResult.ok(f"Equipped {item.name}", item))

    async def unequip_item(self, target: TargetLike) -> ActionResult:
        item = self._resolver.resolve_equipment_item(as_target(target))
        if item is None:
            return self._finish(
                "unequip",
                ActionResult.fail(
                    FailureReason.TARGET_NOT_FOUND, f"Item not found in equipment: {describe(as_target(target))}"
                ),
            )

        remove_option = item.option("remove|unequip")
        before = self._source.get_state()
        count_before = before.count_of(item.id) if before else 0
        start_tick = before.tick if before else 0

        ack = await self._channel.send_use_equipment_item(item.slot, remove_option.op_index if remove_option else 1)
        if not ack.success:
            return self._finish("unequip", self._rejected_command(ack, item))

        try:
            snapshot, rule = await self.await_outcome(
                "unequip",
                start_tick,
                lambda s: s.count_of(item.id) > count_before,
                self._settings.equip_timeout_seconds,
            )
        except ConditionTimeout:
            return self._finish("unequip", ActionResult.fail(FailureReason.TIMEOUT, f"Failed to unequip {item.name}", item))

        if rule is not None:
            return self._finish("unequip", self._rule_result(rule, item.name, item))
        unequipped = next((i for i in snapshot.inventory if i.id == item.id), None)
        return self._finish("unequip", ActionResult.ok(f"Unequipped {item.name}", unequipped))

    async def eat_food(self, target: TargetLike) -> EatResult:
        food = self._resolver.resolve_inventory_item(as_target(target))
        if food is None:
            return self._finish(
                "eat", EatResult.fail(FailureReason.TARGET_NOT_FOUND, f"Food not found: {describe(as_target(target))}")
            )

        eat_option = food.option("eat")
        if eat_option is None:
            return self._finish("eat", EatResult.fail(FailureReason.NO_OPTION, f"No eat option on {food.name}", food))

        before = self._source.get_state()
        hp_before = _hitpoints(before)
        stacks_before = sum(1 for i in before.inventory if i.id == food.id) if before else 0

        ack = await self._channel.send_use_item(food.slot, eat_option.op_index)
        if not ack.success:
            return self._finish("eat", EatResult.fail(FailureReason.COMMAND_REJECTED, ack.message, food))

        def eaten(snapshot: WorldSnapshot) -> bool:
            stacks = sum(1 for i in snapshot.inventory if i.id == food.id)
            return _hitpoints(snapshot) > hp_before or stacks < stacks_before

        try:
            snapshot = await self._waiter.wait_for_condition(eaten, self._settings.eat_timeout_seconds)
        except ConditionTimeout:
            return self._finish("eat", EatResult.fail(FailureReason.TIMEOUT, f"Failed to eat {food.name}", food))

        return self._finish(
            "eat", EatResult.ok(f"Ate {food.name}", food, hp_gained=_hitpoints(snapshot) - hp_before)
        )

    async def drop_item(self, target: TargetLike) -> ActionResult:
        item = self._resolver.resolve_inventory_item(as_target(target))
        if item is None:
            return self._finish(
                "drop", ActionResult.fail(FailureReason.TARGET_NOT_FOUND, f"Item not found: {describe(as_target(target))}")
            )

        ack = await self._channel.send_drop_item(item.slot)
        if not ack.success:
            return self._finish("drop", self._rejected_command(ack, item))

        try:
            await self._waiter.wait_for_condition(
                lambda s: not any(i.slot == item.slot and i.id == item.id for i in s.inventory),
                self._settings.drop_timeout_seconds,
            )
        except ConditionTimeout:
            return self._finish("drop", ActionResult.fail(FailureReason.TIMEOUT, f"Failed to drop {item.name}", item))
        return self._finish("drop", ActionResult.ok(f"Dropped {item.name}", item))

    async def talk_to(self, target: TargetLike) -> ActionResult:
        npc = self._resolver.resolve_npc(as_target(target))
        if npc is None:
            return self._finish(
                "talk", ActionResult.fail(FailureReason.TARGET_NOT_FOUND, f"NPC not found: {describe(as_target(target))}")
            )

        talk_option = npc.option("talk")
        if talk_option is None:
            return self._finish("talk", ActionResult.fail(FailureReason.NO_OPTION, f"No talk option on {npc.name}", npc))

        start_tick = self._tick()
        ack = await self._channel.send_interact_npc(npc.index, talk_option.op_index)
        if not ack.success:
            return self._finish("talk", self._rejected_command(ack, npc))

        try:
            snapshot, rule = await self.await_outcome(
                "talk", start_tick, lambda s: s.dialog.is_open, self._settings.talk_timeout_seconds
            )
        except ConditionTimeout:
            return self._finish("talk", ActionResult.fail(FailureReason.TIMEOUT, "Timed out waiting for dialog", npc))

        if rule is not None:
            return self._finish("talk", self._rule_result(rule, npc.name, npc))
        return self._finish("talk", ActionResult.ok(f"Talking to {npc.name}", snapshot.dialog))

    async def wait_for_skill_level(self, skill_name: str, target_level: int, timeout: float | None = None) -> ActionResult:
        def reached(snapshot: WorldSnapshot) -> bool:
            skill = snapshot.skill(skill_name)
            return skill is not None and skill.base_level >= target_level

        try:
            snapshot = await self._waiter.wait_for_condition(
                reached, timeout or self._settings.skill_wait_timeout_seconds
            )
        except ConditionTimeout:
            return self._finish(
                "wait_skill",
                ActionResult.fail(FailureReason.TIMEOUT, f"{skill_name} did not reach level {target_level}"),
            )
        return self._finish(
            "wait_skill", ActionResult.ok(f"{skill_name} reached level {target_level}", snapshot.skill(skill_name))
        )

    async def wait_for_inventory_item(self, pattern: str | re.Pattern, timeout: float | None = None) -> ActionResult:
        wanted = Pattern(pattern)
        try:
            snapshot = await self._waiter.wait_for_condition(
                lambda s: any(wanted.matches(i.name) for i in s.inventory),
                timeout or self._settings.inventory_wait_timeout_seconds,
            )
        except ConditionTimeout:
            return self._finish(
                "wait_inventory", ActionResult.fail(FailureReason.TIMEOUT, f"No inventory item matching {wanted}")
            )
        item = next(i for i in snapshot.inventory if wanted.matches(i.name))
        return self._finish("wait_inventory", ActionResult.ok(f"Found {item.name}", item))

    async def wait_for_dialog_close(self, timeout: float | None = None) -> ActionResult:
        try:
            await self._waiter.wait_for_condition(
                lambda s: not s.dialog.is_open, timeout or self._settings.dialog_close_timeout_seconds
            )
        except ConditionTimeout:
            return self._finish("wait_dialog_close", ActionResult.fail(FailureReason.TIMEOUT, "Dialog still open"))
        return self._finish("wait_dialog_close", ActionResult.ok("Dialog closed"))

    async def wait_for_idle(self, timeout: float | None = None) -> ActionResult:
        """Let one tick pass, then wait until the player stands on the tile it started from."""
        start = self._source.get_state()
        if start is None or start.player is None:
            return self._finish("wait_idle", ActionResult.fail(FailureReason.NO_STATE, "No player state"))

        origin_x, origin_z = start.player.x, start.player.z
        timeout = timeout or self._settings.idle_timeout_seconds
        await self._waiter.wait_for_next_tick(timeout)
        try:
            snapshot = await self._waiter.wait_for_condition(
                lambda s: s.player is not None and (s.player.x, s.player.z) == (origin_x, origin_z), timeout
            )
        except ConditionTimeout:
            return self._finish(
                "wait_idle",
                ActionResult.fail(FailureReason.TIMEOUT, f"Player did not settle at ({origin_x}, {origin_z})"),
            )
        return self._finish("wait_idle", ActionResult.ok(f"Idle at ({origin_x}, {origin_z})", snapshot.player))

    async def _dismiss_dialogs(self) -> ActionResult:
        for attempt in range(self._settings.max_dismiss_attempts):
            snapshot = self._source.get_state()
            if snapshot is None:
                return ActionResult.fail(FailureReason.NO_STATE, "No game state available")
            if not snapshot.dialog.is_open:
                return ActionResult.ok("No blocking dialog")

            self._logger.debug("dismiss_dialog", extra={"attempt": attempt + 1, "tick": snapshot.tick})
            await self._channel.send_click_dialog(0)
            await self._waiter.wait_for_next_tick(self._settings.state_change_timeout_seconds)

        snapshot = self._source.get_state()
        if snapshot is not None and not snapshot.dialog.is_open:
            return ActionResult.ok("Dismissed dialog")
        return ActionResult.fail(FailureReason.TIMEOUT, "Dialog still open after repeated clicks")

    async def await_outcome(
        self, action: str, start_tick: int, succeeded: Predicate, timeout: float
    ) -> tuple[WorldSnapshot, MessageRule | None]:
        """Wait for a classified failure message newer than ``start_tick`` or for ``succeeded``."""

        async def settled(snapshot: WorldSnapshot) -> bool:
            if self._classifier.classify(action, snapshot, since_tick=start_tick) is not None:
                return True
            return await evaluate(succeeded, snapshot)

        snapshot = await self._waiter.wait_for_condition(settled, timeout)
        return snapshot, self._classifier.classify(action, snapshot, since_tick=start_tick)

    def _tick(self) -> int:
        snapshot = self._source.get_state()
        return snapshot.tick if snapshot else 0

    def _finish(self, action: str, result: Any) -> Any:
        return self._reporter.report(action, result, self._tick())

    @staticmethod
    def _rule_result(
        rule: MessageRule, subject: str, payload: Any = None, result_type: Callable[..., ActionResult] = ActionResult
    ) -> Any:
        template = rule.message or _REASON_TEXT.get(rule.reason, "{subject}: " + rule.reason.value)
        return result_type(False, template.format(subject=subject), rule.reason, payload)

    @staticmethod
    def _rejected_command(ack: CommandAck, payload: Any = None) -> ActionResult:
        return ActionResult.fail(FailureReason.COMMAND_REJECTED, ack.message or "Command rejected locally", payload)

    @staticmethod
    def _door_without_open(door: NearbyLoc) -> ActionResult:
        if door.option(r"^close$") is not None:
            return ActionResult(True, f"{door.name} is already open", FailureReason.ALREADY_OPEN, door)
        options = ", ".join(option.text for option in door.options)
        return ActionResult.fail(FailureReason.NO_OPTION, f"{door.name} has no Open option (options: {options})", door)


def _hitpoints(snapshot: WorldSnapshot | None) -> int:
    if snapshot is None:
        return 10
    skill = snapshot.skill("Hitpoints")
    return skill.level if skill else 10

