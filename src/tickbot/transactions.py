"""Bank and shop flows composed from verified actions.

Transfers are asynchronous on the server, so every quantity reported here is
the measured inventory difference, never the amount that was requested.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from typing import Awaitable, Callable, Literal, Union

from tickbot.actions import VerifiedActionExecutor
from tickbot.adapters.channel import CommandAck, CommandChannel
from tickbot.adapters.state_source import StateSnapshotSource
from tickbot.config import Settings
from tickbot.config import settings as default_settings
from tickbot.journal import ActionReporter
from tickbot.models import ShopItem, WorldSnapshot
from tickbot.resolver import EntityResolver
from tickbot.results import ActionResult, FailureReason, TransferResult
from tickbot.targets import Pattern, TargetLike, as_target, describe
from tickbot.waiter import ConditionTimeout, ConditionWaiter, TickCooldown

BANKER_PATTERN = Pattern(re.compile(r"banker", re.IGNORECASE))
BANK_BOOTH_PATTERN = Pattern(re.compile(r"bank booth|bank chest", re.IGNORECASE))
SHOPKEEPER_PATTERN = Pattern(re.compile(r"shop\s*keeper", re.IGNORECASE))

SELL_AMOUNTS = (1, 5, 10)

SellAmount = Union[int, Literal["all"]]


def _total(items: Iterable[ShopItem], item_id: int) -> int:
    return sum(item.count for item in items if item.id == item_id)


class _ModalHelpers:
    """Shared open/close handling for the bank and shop interfaces."""

    _kind = "modal"

    def __init__(
        self,
        channel: CommandChannel,
        source: StateSnapshotSource,
        waiter: ConditionWaiter,
        resolver: EntityResolver,
        actions: VerifiedActionExecutor,
        *,
        settings: Settings | None = None,
        reporter: ActionReporter | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._channel = channel
        self._source = source
        self._waiter = waiter
        self._resolver = resolver
        self._actions = actions
        self._settings = settings or default_settings
        self._reporter = reporter or ActionReporter()
        self._logger = logger or logging.getLogger(f"tickbot.transactions.{self._kind}")

    def _finish(self, action: str, result: ActionResult) -> ActionResult:
        snapshot = self._source.get_state()
        return self._reporter.report(action, result, snapshot.tick if snapshot else None)

    async def _await_open(self, is_open: Callable[[WorldSnapshot], bool], timeout: float) -> WorldSnapshot | None:
        """Wait for the UI flag in short slices, clicking through any dialog that appears first."""
        cooldown = TickCooldown(self._settings.dialog_cooldown_ticks)

        async def opened(snapshot: WorldSnapshot) -> bool:
            if is_open(snapshot):
                return True
            if snapshot.dialog.is_open and cooldown.ready(snapshot.tick):
                option = snapshot.dialog.options[0].index if snapshot.dialog.options else 0
                self._logger.info("modal_dialog_advanced", extra={"tick": snapshot.tick, "option": option})
                await self._channel.send_click_dialog(option)
            return False

        deadline = self._waiter.now() + timeout
        while (remaining := deadline - self._waiter.now()) > 0:
            try:
                return await self._waiter.wait_for_condition(
                    opened, min(self._settings.open_modal_slice_seconds, remaining)
                )
            except ConditionTimeout:
                self._logger.debug("modal_open_retry", extra={"remaining": remaining})

        final = self._source.get_state()
        return final if final is not None and is_open(final) else None

    async def _close(
        self,
        action: str,
        is_open: Callable[[WorldSnapshot], bool],
        send_close: Callable[[], Awaitable[CommandAck]],
        timeout: float | None,
    ) -> ActionResult:
        """Idempotent close: succeeds immediately when nothing is open, resends once on timeout."""
        label = self._kind.capitalize()
        snapshot = self._source.get_state()
        if snapshot is None or not is_open(snapshot):
            return self._finish(action, ActionResult.ok(f"{label} already closed"))

        await send_close()
        try:
            await self._waiter.wait_for_condition(
                lambda s: not is_open(s), timeout or self._settings.close_modal_timeout_seconds
            )
            return self._finish(action, ActionResult.ok(f"{label} closed"))
        except ConditionTimeout:
            await send_close()
            await self._waiter.pause(self._settings.close_retry_pause_seconds)

        final = self._source.get_state()
        if final is None or not is_open(final):
            return self._finish(action, ActionResult.ok(f"{label} closed (second attempt)"))
        return self._finish(action, ActionResult.fail(FailureReason.TIMEOUT, f"{label} close timeout"))


class BankHelpers(_ModalHelpers):
    _kind = "bank"

    async def open_bank(self, timeout: float | None = None) -> ActionResult:
        timeout = timeout or self._settings.open_modal_timeout_seconds
        snapshot = self._source.get_state()
        if snapshot is not None and snapshot.bank.is_open:
            return self._finish("open_bank", ActionResult.ok("Bank already open"))

        await self._actions.dismiss_blocking_ui()

        ack = await self._interact_with_bank()
        if ack is None:
            return self._finish(
                "open_bank",
                ActionResult.fail(FailureReason.TARGET_NOT_FOUND, "No banker NPC or bank booth found nearby"),
            )
        if not ack.success:
            return self._finish("open_bank", ActionResult.fail(FailureReason.COMMAND_REJECTED, ack.message))

        opened = await self._await_open(lambda s: s.bank.is_open, timeout)
        if opened is None:
            return self._finish(
                "open_bank", ActionResult.fail(FailureReason.TIMEOUT, "Timeout waiting for bank interface to open")
            )
        return self._finish("open_bank", ActionResult.ok(f"Bank opened (interface {opened.bank.interface_id})"))

    async def close_bank(self, timeout: float | None = None) -> ActionResult:
        return await self._close("close_bank", lambda s: s.bank.is_open, self._channel.send_close_modal, timeout)

    async def deposit_item(self, target: TargetLike, amount: int = -1) -> TransferResult:
        """Deposit ``amount`` of an inventory item (-1 for all) and report the measured amount."""
        snapshot = self._source.get_state()
        if snapshot is None or not snapshot.bank.is_open:
            return self._finish("deposit", TransferResult.fail(FailureReason.NOT_OPEN, "Bank is not open"))

        item = self._resolver.resolve_inventory_item(as_target(target))
        if item is None:
            return self._finish(
                "deposit",
                TransferResult.fail(
                    FailureReason.TARGET_NOT_FOUND, f"Item not found in inventory: {describe(as_target(target))}"
                ),
            )

        count_before = snapshot.count_of(item.id)
        ack = await self._channel.send_bank_deposit(item.slot, amount)
        if not ack.success:
            self._logger.warning("deposit_ack_failed", extra={"item": item.name, "ack": ack.message})

        try:
            after = await self._waiter.wait_for_condition(
                lambda s: s.count_of(item.id) < count_before, self._settings.transfer_timeout_seconds
            )
        except ConditionTimeout:
            return self._finish(
                "deposit",
                TransferResult.fail(FailureReason.TIMEOUT, f"Timeout waiting for {item.name} to be deposited", item),
            )

        deposited = count_before - after.count_of(item.id)
        return self._finish(
            "deposit", TransferResult.ok(f"Deposited {item.name} x{deposited}", item, amount=deposited)
        )

    async def withdraw_item(self, target: int | TargetLike, amount: int = 1) -> TransferResult:
        """Withdraw by bank slot or bank item pattern and report the measured amount."""
        snapshot = self._source.get_state()
        if snapshot is None or not snapshot.bank.is_open:
            return self._finish("withdraw", TransferResult.fail(FailureReason.NOT_OPEN, "Bank is not open"))

        bank_item = self._resolver.resolve_bank_item(target if isinstance(target, int) else as_target(target))
        if bank_item is None:
            return self._finish(
                "withdraw", TransferResult.fail(FailureReason.TARGET_NOT_FOUND, f"Item not found in bank: {target}")
            )

        count_before = snapshot.count_of(bank_item.id)
        ack = await self._channel.send_bank_withdraw(bank_item.slot, amount)
        if not ack.success:
            self._logger.warning("withdraw_ack_failed", extra={"item": bank_item.name, "ack": ack.message})

        try:
            after = await self._waiter.wait_for_condition(
                lambda s: s.count_of(bank_item.id) > count_before, self._settings.transfer_timeout_seconds
            )
        except ConditionTimeout:
            return self._finish(
                "withdraw",
                TransferResult.fail(
                    FailureReason.TIMEOUT, f"Timeout waiting for {bank_item.name} to be withdrawn", bank_item
                ),
            )

        withdrawn = after.count_of(bank_item.id) - count_before
        item = next((i for i in after.inventory if i.id == bank_item.id), None)
        return self._finish(
            "withdraw", TransferResult.ok(f"Withdrew {bank_item.name} x{withdrawn}", item, amount=withdrawn)
        )

    async def _interact_with_bank(self) -> CommandAck | None:
        banker = self._resolver.resolve_npc(BANKER_PATTERN)
        if banker is not None:
            option = banker.option(r"^bank$")
            if option is not None:
                return await self._channel.send_interact_npc(banker.index, option.op_index)

        booth = self._resolver.resolve_loc(BANK_BOOTH_PATTERN)
        if booth is not None:
            option = booth.option(r"^bank$") or booth.option("use")
            if option is not None:
                return await self._channel.send_interact_loc(booth.x, booth.z, booth.id, option.op_index)
        return None


class ShopHelpers(_ModalHelpers):
    _kind = "shop"

    async def open_shop(self, target: TargetLike = None, timeout: float | None = None) -> ActionResult:
        timeout = timeout or self._settings.open_modal_timeout_seconds
        snapshot = self._source.get_state()
        if snapshot is not None and snapshot.shop.is_open:
            return self._finish("open_shop", ActionResult.ok(f"Shop already open: {snapshot.shop.title}"))

        npc = self._resolver.resolve_npc(as_target(target, SHOPKEEPER_PATTERN))
        if npc is None:
            return self._finish("open_shop", ActionResult.fail(FailureReason.TARGET_NOT_FOUND, "Shopkeeper not found"))

        trade_option = npc.option("trade")
        if trade_option is None:
            return self._finish(
                "open_shop", ActionResult.fail(FailureReason.NO_OPTION, f"No trade option on {npc.name}", npc)
            )

        ack = await self._channel.send_interact_npc(npc.index, trade_option.op_index)
        if not ack.success:
            return self._finish("open_shop", ActionResult.fail(FailureReason.COMMAND_REJECTED, ack.message, npc))

        opened = await self._await_open(lambda s: s.shop.is_open, timeout)
        if opened is None:
            return self._finish(
                "open_shop", ActionResult.fail(FailureReason.TIMEOUT, "Timed out waiting for shop to open", npc)
            )
        return self._finish("open_shop", ActionResult.ok(f"Opened shop: {opened.shop.title}", npc))

    async def close_shop(self, timeout: float | None = None) -> ActionResult:
        return await self._close("close_shop", lambda s: s.shop.is_open, self._channel.send_close_shop, timeout)

    async def buy_from_shop(self, target: TargetLike, amount: int = 1) -> TransferResult:
        snapshot = self._source.get_state()
        if snapshot is None or not snapshot.shop.is_open:
            return self._finish("buy", TransferResult.fail(FailureReason.NOT_OPEN, "Shop is not open"))

        shop_item = self._resolver.resolve_shop_item(as_target(target), snapshot.shop.shop_items)
        if shop_item is None:
            return self._finish(
                "buy",
                TransferResult.fail(
                    FailureReason.TARGET_NOT_FOUND, f"Item not found in shop: {describe(as_target(target))}"
                ),
            )

        count_before = snapshot.count_of(shop_item.id)
        ack = await self._channel.send_shop_buy(shop_item.slot, amount)
        if not ack.success:
            return self._finish("buy", TransferResult.fail(FailureReason.COMMAND_REJECTED, ack.message, shop_item))

        try:
            after, rule = await self._actions.await_outcome(
                "buy",
                snapshot.tick,
                lambda s: s.count_of(shop_item.id) > count_before,
                self._settings.transfer_timeout_seconds,
            )
        except ConditionTimeout:
            return self._finish(
                "buy",
                TransferResult.fail(
                    FailureReason.TIMEOUT, f"Failed to buy {shop_item.name} (no coins or out of stock?)", shop_item
                ),
            )

        bought = max(0, after.count_of(shop_item.id) - count_before)
        if rule is not None:
            return self._finish(
                "buy",
                TransferResult(
                    False,
                    f"Could not buy {shop_item.name}: {rule.reason.value}",
                    rule.reason,
                    shop_item,
                    amount=bought,
                ),
            )
        item = next((i for i in after.inventory if i.id == shop_item.id), None)
        return self._finish("buy", TransferResult.ok(f"Bought {shop_item.name} x{bought}", item, amount=bought))

    async def sell_to_shop(self, target: TargetLike, amount: SellAmount = 1) -> TransferResult:
        """Sell 1, 5 or 10 of an item (other counts sell 1), or ``"all"`` in capped batches."""
        snapshot = self._source.get_state()
        if snapshot is None or not snapshot.shop.is_open:
            return self._finish("sell", TransferResult.fail(FailureReason.NOT_OPEN, "Shop is not open"))

        sell_item = self._resolver.resolve_shop_item(as_target(target), snapshot.shop.player_items)
        if sell_item is None:
            return self._finish(
                "sell",
                TransferResult.fail(
                    FailureReason.TARGET_NOT_FOUND, f"Item not found to sell: {describe(as_target(target))}"
                ),
            )

        if amount == "all":
            return self._finish("sell", await self._sell_all(sell_item))

        quantity = amount if amount in SELL_AMOUNTS else 1
        total_before = _total(snapshot.shop.player_items, sell_item.id)
        ack = await self._channel.send_shop_sell(sell_item.slot, quantity)
        if not ack.success:
            return self._finish("sell", TransferResult.fail(FailureReason.COMMAND_REJECTED, ack.message, sell_item))

        try:
            after, rule = await self._actions.await_outcome(
                "sell",
                snapshot.tick,
                lambda s: _total(s.shop.player_items, sell_item.id) < total_before,
                self._settings.transfer_timeout_seconds,
            )
        except ConditionTimeout:
            return self._finish(
                "sell",
                TransferResult.fail(FailureReason.TIMEOUT, f"Failed to sell {sell_item.name} (timeout)", sell_item),
            )

        if rule is not None:
            return self._finish("sell", self._rejection(rule.reason, sell_item, 0))

        sold = total_before - _total(after.shop.player_items, sell_item.id)
        return self._finish("sell", TransferResult.ok(f"Sold {sell_item.name} x{sold}", sell_item, amount=sold))

    async def _sell_all(self, sell_item: ShopItem) -> TransferResult:
        total_sold = 0
        stop_reason = FailureReason.REJECTED

        while True:
            snapshot = self._source.get_state()
            if snapshot is None or not snapshot.shop.is_open:
                stop_reason = FailureReason.NOT_OPEN
                break

            stack = next((i for i in snapshot.shop.player_items if i.id == sell_item.id and i.count > 0), None)
            if stack is None:
                break

            total_before = _total(snapshot.shop.player_items, sell_item.id)
            batch = min(self._settings.sell_batch_max, stack.count)
            ack = await self._channel.send_shop_sell(stack.slot, batch)
            if not ack.success:
                stop_reason = FailureReason.COMMAND_REJECTED
                break

            try:
                after, rule = await self._actions.await_outcome(
                    "sell",
                    snapshot.tick,
                    lambda s: _total(s.shop.player_items, sell_item.id) < total_before,
                    self._settings.sell_batch_timeout_seconds,
                )
            except ConditionTimeout:
                stop_reason = FailureReason.TIMEOUT
                break

            sold = max(0, total_before - _total(after.shop.player_items, sell_item.id))
            total_sold += sold
            if rule is not None:
                return self._rejection(rule.reason, sell_item, total_sold)
            if sold == 0:
                self._logger.warning("sell_all_no_progress", extra={"item": sell_item.name, "sold": total_sold})
                break

        if total_sold == 0:
            return TransferResult.fail(stop_reason, f"Failed to sell any {sell_item.name}", sell_item)
        return TransferResult.ok(f"Sold {sell_item.name} x{total_sold}", sell_item, amount=total_sold)

    @staticmethod
    def _rejection(reason: FailureReason, item: ShopItem, sold: int) -> TransferResult:
        messages = {
            FailureReason.NOT_BUYABLE_HERE: f"Shop doesn't buy {item.name}",
            FailureReason.NOT_BUYABLE_ANYWHERE: f"Cannot sell {item.name} to any shop",
            FailureReason.NOT_TRADEABLE: f"{item.name} is not tradeable",
        }
        message = messages.get(reason, f"Shop refused {item.name}")
        if sold > 0:
            message = f"Sold {item.name} x{sold}, then: {message}"
        return TransferResult(sold > 0, message, reason, item, amount=sold)
