"""Order book that matches buy and sell orders between traders."""

from __future__ import annotations

import enum
import threading
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Optional

from .accounts import Account, AccountRegistry
from .protocol import NotifyInfo, PacketType, StatusInfo

Broadcast = Callable[[PacketType, Any], None]


class Side(enum.Enum):
    BUY = "buy"
    SELL = "sell"


@dataclass(eq=False)
class Order:
    """An order posted by a trader; quantity is what remains unfilled."""

    id: int
    side: Side
    trader: Any
    quantity: int
    price: int


@dataclass(frozen=True)
class Trade:
    """A completed trade between a buy order and a sell order."""

    buyer: int
    seller: int
    quantity: int
    price: int


class Exchange:
    """Accepts orders, matches them and settles the resulting trades.

    A trader is any object with an ``account`` attribute holding its
    :class:`Account` and a ``send(packet_type, payload)`` method.
    ``broadcast(packet_type, payload)`` delivers a packet to every trader.
    """

    def __init__(self, accounts: AccountRegistry, broadcast: Broadcast) -> None:
        self._accounts = accounts
        self._broadcast = broadcast
        self._cond = threading.Condition(threading.RLock())
        self._next_id = 1
        self._pending: deque[Order] = deque()
        self._buys: list[Order] = []
        self._sells: list[Order] = []
        self._thread: Optional[threading.Thread] = None
        self._stopping = False

    # ------------------------------------------------------------------ status

    def _bid(self) -> int:
        return max((order.price for order in self._buys), default=0)

    def _ask(self) -> int:
        return min((order.price for order in self._sells), default=0)

    def _status(self, account: Account, orderid: int = 0, quantity: int = 0) -> StatusInfo:
        figures = self._accounts.status(account)
        return StatusInfo(
            balance=figures.balance,
            inventory=figures.inventory,
            bid=self._bid(),
            ask=self._ask(),
            last=figures.last,
            orderid=orderid,
            quantity=quantity,
        )

    def get_status(self, account: Account) -> StatusInfo:
        """Return the account's figures with the current best bid and ask."""
        with self._cond:
            return self._status(account)

    # ----------------------------------------------------------------- posting

    def _post(self, side: Side, trader: Any, quantity: int, price: int) -> int:
        with self._cond:
            account = trader.account
            if side is Side.BUY:
                self._accounts.decrease_balance(account, quantity * price)
            else:
                self._accounts.decrease_inventory(account, quantity)
            order = Order(self._next_id, side, trader, quantity, price)
            self._next_id += 1
            self._pending.append(order)
            trader.send(PacketType.ACK, self._status(account, orderid=order.id))
            self._cond.notify_all()
        if side is Side.BUY:
            info = NotifyInfo(buyer=order.id, seller=0, quantity=quantity, price=price)
        else:
            info = NotifyInfo(buyer=0, seller=order.id, quantity=quantity, price=price)
        self._broadcast(PacketType.POSTED, info)
        return order.id

    def post_buy(self, trader: Any, quantity: int, price: int) -> int:
        """Reserve funds and queue a buy order; return its id.

        Raises InsufficientFunds if the trader cannot pay for the order.
        """
        return self._post(Side.BUY, trader, quantity, price)

    def post_sell(self, trader: Any, quantity: int, price: int) -> int:
        """Reserve inventory and queue a sell order; return its id.

        Raises InsufficientInventory if the trader lacks the inventory.
        """
        return self._post(Side.SELL, trader, quantity, price)

    # --------------------------------------------------------------- canceling

    def cancel(self, trader: Any, order: int) -> int:
        """Withdraw a resting order, refund its reserve and return its quantity.

        Raises KeyError if the trader has no such order on the book.
        """
        with self._cond:
            for book in (self._buys, self._sells):
                found = next(
                    (o for o in book if o.id == order and o.trader is trader), None
                )
                if found is not None:
                    break
            else:
                raise KeyError(order)
            book.remove(found)
            account = trader.account
            if found.side is Side.BUY:
                self._accounts.increase_balance(account, found.quantity * found.price)
                info = NotifyInfo(buyer=order, seller=0, quantity=found.quantity, price=found.price)
            else:
                self._accounts.increase_inventory(account, found.quantity)
                info = NotifyInfo(buyer=0, seller=order, quantity=found.quantity, price=found.price)
            trader.send(
                PacketType.ACK,
                self._status(account, orderid=order, quantity=found.quantity),
            )
            self._broadcast(PacketType.CANCELED, info)
            return found.quantity

    # ---------------------------------------------------------------- matching

    def _settle(self, buy: Order, sell: Order, quantity: int) -> Trade:
        price = sell.price
        info = NotifyInfo(buyer=buy.id, seller=sell.id, quantity=quantity, price=price)
        buy.trader.send(PacketType.BOUGHT, info)
        sell.trader.send(PacketType.SOLD, info)
        self._broadcast(PacketType.TRADED, info)
        buyer_account = buy.trader.account
        self._accounts.increase_balance(sell.trader.account, quantity * price)
        self._accounts.increase_inventory(buyer_account, quantity)
        if buy.price > price:
            self._accounts.increase_balance(buyer_account, quantity * (buy.price - price))
        buy.quantity -= quantity
        sell.quantity -= quantity
        return Trade(buy.id, sell.id, quantity, price)

    def _match(self, incoming: Order) -> list[Trade]:
        if incoming.side is Side.BUY:
            book, own_book = self._sells, self._buys
        else:
            book, own_book = self._buys, self._sells
        trades = []
        for resting in list(book):
            if incoming.quantity == 0:
                break
            if incoming.side is Side.BUY:
                buy, sell = incoming, resting
            else:
                buy, sell = resting, incoming
            if sell.price > buy.price:
                continue
            trades.append(self._settle(buy, sell, min(buy.quantity, sell.quantity)))
            if resting.quantity == 0:
                book.remove(resting)
        if incoming.quantity > 0:
            own_book.append(incoming)
        return trades

    def match_pending(self) -> list[Trade]:
        """Match every queued order against the book, in posting order."""
        trades: list[Trade] = []
        with self._cond:
            while self._pending:
                trades.extend(self._match(self._pending.popleft()))
        return trades

    # --------------------------------------------------------------- lifecycle

    def _run(self) -> None:
        with self._cond:
            while True:
                self._cond.wait_for(lambda: self._pending or self._stopping)
                if self._pending:
                    self.match_pending()
                elif self._stopping:
                    return

    def start(self) -> None:
        """Start the background thread that matches orders as they arrive."""
        with self._cond:
            if self._thread is not None:
                return
            self._stopping = False
            self._thread = threading.Thread(target=self._run, name="matchmaker", daemon=True)
            self._thread.start()

    def close(self) -> None:
        """Stop matching, then cancel every resting order, refunding its reserve."""
        with self._cond:
            self._stopping = True
            self._cond.notify_all()
            thread = self._thread
        if thread is not None:
            thread.join()
        with self._cond:
            self._thread = None
            self._stopping = False
            self.match_pending()
            resting = list(self._buys) + list(self._sells)
            for order in resting:
                self.cancel(order.trader, order.id)

    def __enter__(self) -> "Exchange":
        self.start()
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()