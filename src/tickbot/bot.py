"""Facade wiring the porcelain layer around one session's channel and snapshot source."""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence

from tickbot.actions import VerifiedActionExecutor
from tickbot.adapters.channel import CommandChannel
from tickbot.adapters.state_source import StateSnapshotSource
from tickbot.classifier import FailureClassifier
from tickbot.clock import Clock
from tickbot.config import Settings
from tickbot.config import settings as default_settings
from tickbot.journal import ActionJournal, ActionReporter, InMemoryActionJournal, JsonlActionJournal
from tickbot.models import WorldSnapshot
from tickbot.movement import LongRangePathSearch, MovementPlanner
from tickbot.resolver import EntityResolver
from tickbot.results import ActionResult, EatResult, SkillResult, TransferResult
from tickbot.targets import TargetLike
from tickbot.telemetry import Telemetry
from tickbot.transactions import BankHelpers, SellAmount, ShopHelpers
from tickbot.waiter import ConditionWaiter, Predicate


class Bot:
    """High-level bot API: every method sends at most one primitive per step and verifies it."""

    def __init__(
        self,
        source: StateSnapshotSource,
        channel: CommandChannel,
        *,
        settings: Settings | None = None,
        clock: Clock | None = None,
        classifier: FailureClassifier | None = None,
        journal: ActionJournal | None = None,
        telemetry: Telemetry | None = None,
        path_search: LongRangePathSearch | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.settings = settings or default_settings
        self._source = source
        self._channel = channel
        self._logger = logger or logging.getLogger("tickbot.bot")

        if classifier is None:
            rules_path = self.settings.classifier_rules_path
            classifier = FailureClassifier.from_file(rules_path) if rules_path else FailureClassifier()
        if journal is None:
            journal_path = self.settings.journal_path
            journal = JsonlActionJournal(journal_path) if journal_path else InMemoryActionJournal()

        self.classifier = classifier
        self.reporter = ActionReporter(journal=journal, telemetry=telemetry)
        self.waiter = ConditionWaiter(
            source, clock=clock, poll_interval_seconds=self.settings.poll_interval_seconds
        )
        self.resolver = EntityResolver(source)
        self.movement = MovementPlanner(
            channel,
            source,
            self.waiter,
            settings=self.settings,
            path_search=path_search,
            reporter=self.reporter,
        )
        self.actions = VerifiedActionExecutor(
            channel,
            source,
            self.waiter,
            self.resolver,
            self.movement,
            settings=self.settings,
            classifier=classifier,
            reporter=self.reporter,
        )
        self.bank = BankHelpers(
            channel, source, self.waiter, self.resolver, self.actions, settings=self.settings, reporter=self.reporter
        )
        self.shop = ShopHelpers(
            channel, source, self.waiter, self.resolver, self.actions, settings=self.settings, reporter=self.reporter
        )
        self._logger.debug("bot_initialized", extra={"journal": type(journal).__name__})

    @property
    def journal(self) -> ActionJournal:
        return self.reporter.journal

    def get_state(self) -> WorldSnapshot | None:
        return self._source.get_state()

    async def wait_for_condition(self, predicate: Predicate, timeout: float) -> WorldSnapshot:
        return await self.waiter.wait_for_condition(predicate, timeout)

    # Movement

    async def walk_to(self, x: int, z: int, tolerance: int | None = None) -> ActionResult:
        return await self.movement.walk_to(x, z, tolerance)

    # UI

    async def dismiss_blocking_ui(self) -> ActionResult:
        return await self.actions.dismiss_blocking_ui()

    async def navigate_dialog(self, choices: Sequence[int | str | re.Pattern]) -> ActionResult:
        return await self.actions.navigate_dialog(choices)

    async def wait_for_dialog_close(self, timeout: float | None = None) -> ActionResult:
        return await self.actions.wait_for_dialog_close(timeout)

    async def wait_for_idle(self, timeout: float | None = None) -> ActionResult:
        return await self.actions.wait_for_idle(timeout)

    # Combat

    async def attack_npc(self, target: TargetLike, timeout: float | None = None) -> ActionResult:
        return await self.actions.attack_npc(target, timeout)

    async def cast_spell_on_npc(
        self, target: TargetLike, spell_component: int, timeout: float | None = None
    ) -> SkillResult:
        return await self.actions.cast_spell_on_npc(target, spell_component, timeout)

    async def set_combat_style(self, style: int) -> ActionResult:
        return await self.actions.set_combat_style(style)

    # World

    async def pickup_item(self, target: TargetLike) -> ActionResult:
        return await self.actions.pickup_item(target)

    async def open_door(self, target: TargetLike = None) -> ActionResult:
        return await self.actions.open_door(target)

    async def chop_tree(self, target: TargetLike = None) -> ActionResult:
        return await self.actions.chop_tree(target)

    async def use_item_on_loc(self, item_target: TargetLike, loc_target: TargetLike) -> ActionResult:
        return await self.actions.use_item_on_loc(item_target, loc_target)

    async def talk_to(self, target: TargetLike) -> ActionResult:
        return await self.actions.talk_to(target)

    # Inventory

    async def burn_logs(self, logs_target: TargetLike = None) -> SkillResult:
        return await self.actions.burn_logs(logs_target)

    async def equip_item(self, target: TargetLike) -> ActionResult:
        return await self.actions.equip_item(target)

    async def unequip_item(self, target: TargetLike) -> ActionResult:
        return await self.actions.unequip_item(target)

    async def eat_food(self, target: TargetLike) -> EatResult:
        return await self.actions.eat_food(target)

    async def drop_item(self, target: TargetLike) -> ActionResult:
        return await self.actions.drop_item(target)

    async def wait_for_skill_level(
        self, skill_name: str, target_level: int, timeout: float | None = None
    ) -> ActionResult:
        return await self.actions.wait_for_skill_level(skill_name, target_level, timeout)

    async def wait_for_inventory_item(self, pattern: str | re.Pattern, timeout: float | None = None) -> ActionResult:
        return await self.actions.wait_for_inventory_item(pattern, timeout)

    # Bank

    async def open_bank(self, timeout: float | None = None) -> ActionResult:
        return await self.bank.open_bank(timeout)

    async def close_bank(self, timeout: float | None = None) -> ActionResult:
        return await self.bank.close_bank(timeout)

    async def deposit_item(self, target: TargetLike, amount: int = -1) -> TransferResult:
        return await self.bank.deposit_item(target, amount)

    async def withdraw_item(self, target: int | TargetLike, amount: int = 1) -> TransferResult:
        return await self.bank.withdraw_item(target, amount)

    # Shop

    async def open_shop(self, target: TargetLike = None, timeout: float | None = None) -> ActionResult:
        return await self.shop.open_shop(target, timeout)

    async def close_shop(self, timeout: float | None = None) -> ActionResult:
        return await self.shop.close_shop(timeout)

    async def buy_from_shop(self, target: TargetLike, amount: int = 1) -> TransferResult:
        return await self.shop.buy_from_shop(target, amount)

    async def sell_to_shop(self, target: TargetLike, amount: SellAmount = 1) -> TransferResult:
        return await self.shop.sell_to_shop(target, amount)
