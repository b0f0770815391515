from __future__ import annotations

import asyncio
from dataclasses import replace
from typing import Any

from tickbot.adapters.channel import CommandAck
from tickbot.models import (
    BankItem,
    BankState,
    DialogOption,
    DialogState,
    InventoryItem,
    PlayerState,
    ShopItem,
    ShopState,
    WorldSnapshot,
)
from tickbot.results import FailureReason
from tests.helpers import FakeWorld, loc, make_bot, npc


def _world(**fields: Any) -> FakeWorld:
    fields.setdefault("player", PlayerState(name="bot", x=3208, z=3220))
    return FakeWorld(WorldSnapshot(tick=500, **fields))


# bank


def test_open_bank_clicks_through_interstitial_dialog() -> None:
    banker = npc(12, "Banker", 3209, 3220, 1, "Talk-to", "Bank", "Collect")
    world = _world(nearby_npcs=(banker,))
    greeting = DialogState(True, "Good day, how may I help you?", (DialogOption(1, "I'd like to access my bank account."),))

    def open_bank() -> None:
        world.update(dialog=DialogState(), bank=BankState(True, 12, ()))

    world.on("send_interact_npc", lambda index, option: world.schedule(1, lambda: world.update(dialog=greeting)))
    world.on("send_click_dialog", lambda option: world.schedule(1, open_bank))
    bot = make_bot(world)

    result = asyncio.run(bot.open_bank())

    assert result.success is True
    assert world.sent("send_interact_npc") == [(12, 2)]
    assert world.sent("send_click_dialog") == [(1,)]


def test_open_bank_uses_booth_when_no_banker() -> None:
    world = _world(nearby_locs=(loc(10355, "Bank booth", 3208, 3221, 1, "Use", "Examine"),))
    world.on(
        "send_interact_loc", lambda *args: world.schedule(1, lambda: world.update(bank=BankState(True, 12, ())))
    )
    bot = make_bot(world)

    result = asyncio.run(bot.open_bank())

    assert result.success is True
    assert world.sent("send_interact_loc") == [(3208, 3221, 10355, 1)]


def test_open_bank_without_banker_or_booth() -> None:
    world = _world()
    bot = make_bot(world)

    result = asyncio.run(bot.open_bank())

    assert result.success is False
    assert result.reason is FailureReason.TARGET_NOT_FOUND
    assert world.commands == []


def test_open_bank_times_out() -> None:
    world = _world(nearby_npcs=(npc(12, "Banker", 3209, 3220, 1, "Bank"),))
    bot = make_bot(world)

    result = asyncio.run(bot.open_bank(timeout=4.0))

    assert result.reason is FailureReason.TIMEOUT
    assert world.clock.now >= 3.99


def test_close_bank_is_idempotent() -> None:
    world = _world()
    bot = make_bot(world)

    result = asyncio.run(bot.close_bank())

    assert result.success is True
    assert world.commands == []


def test_close_bank_resends_once_when_ignored() -> None:
    world = _world(bank=BankState(True, 12, ()))
    closes: list[int] = []

    def close() -> None:
        closes.append(world.tick)
        if len(closes) == 2:
            world.schedule(1, lambda: world.update(bank=BankState()))

    world.on("send_close_modal", close)
    bot = make_bot(world)

    result = asyncio.run(bot.close_bank())

    assert result.success is True
    assert len(world.sent("send_close_modal")) == 2


def test_deposit_reports_measured_amount() -> None:
    world = _world(bank=BankState(True, 12, ()), inventory=(InventoryItem(3, 995, "Coins", 12),))
    world.on(
        "send_bank_deposit",
        lambda slot, amount: world.schedule(1, lambda: world.update(inventory=(InventoryItem(3, 995, "Coins", 5),))),
    )
    bot = make_bot(world)

    result = asyncio.run(bot.deposit_item("coins"))

    assert result.success is True
    assert result.amount == 7
    assert world.sent("send_bank_deposit") == [(3, -1)]


def test_deposit_does_not_trust_local_ack() -> None:
    world = _world(bank=BankState(True, 12, ()), inventory=(InventoryItem(0, 1511, "Logs", 1),))
    world.acks["send_bank_deposit"] = CommandAck(False, "unknown slot")
    world.schedule(1, lambda: world.update(inventory=()))
    bot = make_bot(world)

    result = asyncio.run(bot.deposit_item("logs", 1))

    assert result.success is True
    assert result.amount == 1


def test_deposit_requires_open_bank() -> None:
    world = _world(inventory=(InventoryItem(0, 1511, "Logs", 1),))
    bot = make_bot(world)

    result = asyncio.run(bot.deposit_item("logs"))

    assert result.reason is FailureReason.NOT_OPEN
    assert world.commands == []


def test_withdraw_by_bank_slot() -> None:
    world = _world(bank=BankState(True, 12, (BankItem(0, 995, "Coins", 100), BankItem(1, 1511, "Logs", 40))))
    world.on(
        "send_bank_withdraw",
        lambda slot, amount: world.schedule(
            1, lambda: world.update(inventory=(InventoryItem(0, 1511, "Logs", amount),))
        ),
    )
    bot = make_bot(world)

    result = asyncio.run(bot.withdraw_item(1, 5))

    assert result.success is True
    assert result.amount == 5
    assert world.sent("send_bank_withdraw") == [(1, 5)]


def test_withdraw_missing_item() -> None:
    world = _world(bank=BankState(True, 12, (BankItem(0, 995, "Coins", 100),)))
    bot = make_bot(world)

    result = asyncio.run(bot.withdraw_item("logs"))

    assert result.reason is FailureReason.TARGET_NOT_FOUND


# shop


def _shop_world(count: int = 23) -> FakeWorld:
    shop = ShopState(
        True,
        "Bob's Brilliant Axes",
        shop_items=(ShopItem(0, 1351, "Bronze axe", 10, 16),),
        player_items=(ShopItem(0, 1511, "Logs", count),),
    )
    return _world(shop=shop, inventory=(InventoryItem(0, 1511, "Logs", count),))


def _sell(world: FakeWorld, amount: int) -> None:
    shop = world.state.shop
    remaining = max(0, shop.player_items[0].count - amount)
    items = (replace(shop.player_items[0], count=remaining),) if remaining else ()
    world.update(shop=replace(shop, player_items=items))


def test_open_shop_requires_trade_option() -> None:
    world = _world(nearby_npcs=(npc(20, "Shopkeeper", 3209, 3220, 1, "Talk-to"),))
    bot = make_bot(world)

    result = asyncio.run(bot.open_shop())

    assert result.reason is FailureReason.NO_OPTION
    assert world.commands == []


def test_open_shop_waits_for_interface() -> None:
    world = _world(nearby_npcs=(npc(20, "Shop keeper", 3209, 3220, 1, "Talk-to", "Trade"),))
    world.on(
        "send_interact_npc",
        lambda *args: world.schedule(2, lambda: world.update(shop=ShopState(True, "General Store"))),
    )
    bot = make_bot(world)

    result = asyncio.run(bot.open_shop())

    assert result.success is True
    assert "General Store" in result.message
    assert world.sent("send_interact_npc") == [(20, 2)]


def test_sell_all_in_capped_batches() -> None:
    world = _shop_world(23)
    world.on("send_shop_sell", lambda slot, amount: world.schedule(1, lambda: _sell(world, amount)))
    bot = make_bot(world)

    result = asyncio.run(bot.sell_to_shop("logs", "all"))

    assert result.success is True
    assert result.amount == 23
    assert world.sent("send_shop_sell") == [(0, 10), (0, 10), (0, 3)]


def test_sell_all_walks_each_stack_separately() -> None:
    stacks = tuple(ShopItem(slot, 1739, "Cowhide", 1) for slot in range(4)) + (ShopItem(4, 1739, "Cowhide", 7),)
    world = _world(shop=ShopState(True, "General Store", player_items=stacks))

    def sell(slot: int, amount: int) -> None:
        def apply() -> None:
            shop = world.state.shop
            items = tuple(
                replace(i, count=i.count - amount) if i.slot == slot else i for i in shop.player_items
            )
            world.update(shop=replace(shop, player_items=tuple(i for i in items if i.count > 0)))

        world.schedule(1, apply)

    world.on("send_shop_sell", sell)
    bot = make_bot(world)

    result = asyncio.run(bot.sell_to_shop("cowhide", "all"))

    assert result.success is True
    assert result.amount == 11
    assert world.sent("send_shop_sell") == [(0, 1), (1, 1), (2, 1), (3, 1), (4, 7)]


def test_sell_all_stops_on_rejection_and_keeps_partial_total() -> None:
    world = _shop_world(23)
    sells: list[int] = []

    def sell(slot: int, amount: int) -> None:
        sells.append(amount)
        if len(sells) == 1:
            world.schedule(1, lambda: _sell(world, amount))
        else:
            world.schedule(1, lambda: world.say("You can't sell this item to this shop."))

    world.on("send_shop_sell", sell)
    bot = make_bot(world)

    result = asyncio.run(bot.sell_to_shop("logs", "all"))

    assert result.success is True
    assert result.amount == 10
    assert result.reason is FailureReason.NOT_BUYABLE_HERE
    assert sells == [10, 10]


def test_sell_rejected_item() -> None:
    world = _shop_world(1)
    world.on("send_shop_sell", lambda *args: world.schedule(1, lambda: world.say("You can't sell this item.")))
    bot = make_bot(world)

    result = asyncio.run(bot.sell_to_shop("logs"))

    assert result.success is False
    assert result.reason is FailureReason.NOT_TRADEABLE
    assert result.rejected is True


def test_sell_unsupported_amount_sells_one() -> None:
    world = _shop_world(23)
    world.on("send_shop_sell", lambda slot, amount: world.schedule(1, lambda: _sell(world, amount)))
    bot = make_bot(world)

    result = asyncio.run(bot.sell_to_shop("logs", 7))

    assert result.success is True
    assert result.amount == 1
    assert world.sent("send_shop_sell") == [(0, 1)]


def test_buy_reports_measured_amount() -> None:
    world = _shop_world(0)
    world.on(
        "send_shop_buy",
        lambda slot, amount: world.schedule(
            1, lambda: world.update(inventory=world.state.inventory + (InventoryItem(1, 1351, "Bronze axe"),))
        ),
    )
    bot = make_bot(world)

    result = asyncio.run(bot.buy_from_shop("bronze axe", 1))

    assert result.success is True
    assert result.amount == 1
    assert world.sent("send_shop_buy") == [(0, 1)]


def test_buy_without_coins() -> None:
    world = _shop_world(0)
    world.on("send_shop_buy", lambda *args: world.schedule(1, lambda: world.say("You don't have enough coins.")))
    bot = make_bot(world)

    result = asyncio.run(bot.buy_from_shop("bronze axe"))

    assert result.success is False
    assert result.reason is FailureReason.INSUFFICIENT_FUNDS


def test_close_shop_when_open() -> None:
    world = _shop_world(1)
    world.on("send_close_shop", lambda: world.schedule(1, lambda: world.update(shop=ShopState())))
    bot = make_bot(world)

    result = asyncio.run(bot.close_shop())

    assert result.success is True
    assert len(world.sent("send_close_shop")) == 1
