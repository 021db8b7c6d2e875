# bourse

Components for a small commodity exchange. Traders hold accounts with a
cash balance and an inventory. They post buy and sell orders, and a
matchmaker fills those orders against each other. A compact binary packet
format describes the messages that clients and server exchange.

The package has no dependencies outside the standard library.

## Modules

- `bourse.accounts`: `AccountRegistry(capacity=64)` keeps one `Account` per
  name and creates it on first `lookup()`. It raises `AccountsFull` when a new
  name would exceed the capacity. `increase_balance`, `decrease_balance`,
  `increase_inventory` and `decrease_inventory` change an account. A decrease
  that would overdraw raises `InsufficientFunds` or `InsufficientInventory`,
  and a negative amount raises `ValueError`. `status()` returns an
  `AccountStatus` snapshot. All operations are guarded by a lock.
- `bourse.client_registry`: `ClientRegistry` tracks connected clients.
  `register` and `unregister` add and remove connections. `unregister` raises
  `KeyError` for an unknown connection. `wait_for_empty(timeout)` blocks until
  no client remains and returns `False` if the timeout expired first.
  `shutdown_all()` shuts down the reading side of every registered socket.
- `bourse.protocol`: `PacketType` and `PacketHeader` define the packet frame.
  The payload records are `StatusInfo`, `NotifyInfo`, `FundsInfo`,
  `EscrowInfo`, `OrderInfo` and `CancelInfo`. Each record has `pack()` and
  `unpack()` methods that use network byte order. `send_packet(stream,
  packet_type, payload)` writes one timestamped packet and returns its
  header. `PacketReader(stream).receive()` returns `(header, payload)`. At end
  of input it raises `EOFError`. It raises `ProtocolError` for a packet type
  a client may not send, for a timestamp that is not later than the previous
  one, and for a truncated payload.
- `bourse.exchange`: `Exchange(accounts, broadcast)` queues posted orders and
  matches them against resting orders of the other `Side`, in posting order.
  A buy and a sell match when the sell price is at or below the buy price.
  Each fill is settled as a `Trade`: the seller is paid the sell price, and
  the buyer receives the inventory plus a refund of any price difference.
  `post_buy` reserves funds and `post_sell` reserves inventory. `cancel`
  returns the reserve of a resting order and raises `KeyError` if the trader
  has no such order. `get_status` returns a `StatusInfo` with the best bid
  and ask.

A trader, as the exchange sees it, is any object with an `account`
attribute and a `send(packet_type, payload)` method. The `broadcast`
callable receives `(packet_type, payload)` for every posted, traded and
canceled notice.

## Example

```python
from bourse.accounts import AccountRegistry
from bourse.exchange import Exchange


class Trader:
    def __init__(self, account):
        self.account = account
        self.inbox = []

    def send(self, packet_type, payload):
        self.inbox.append((packet_type, payload))


accounts = AccountRegistry(64)
notices = []
exchange = Exchange(accounts, lambda packet_type, payload: notices.append(packet_type))

alice = Trader(accounts.lookup("alice"))
bob = Trader(accounts.lookup("bob"))
accounts.increase_balance(alice.account, 1000)
accounts.increase_inventory(bob.account, 10)

exchange.post_sell(bob, 5, 20)
exchange.post_buy(alice, 5, 25)
print(exchange.match_pending())          # one Trade of 5 at price 20
print(accounts.status(alice.account))    # balance 900, inventory 5
exchange.close()
```

`Exchange.start()` runs the matchmaker on a background thread, which matches
orders as they are posted. When the exchange is used as a context manager,
`start()` runs on entry and `close()` runs on exit. `close()` stops that
thread, matches anything still queued, and then cancels every resting order,
which returns the reserved funds and inventory to their owners.

## What it does not do

The package provides no server program and no command. Nothing here listens
on a port, accepts connections, logs traders in, or turns incoming packets
into calls on the exchange. Those parts have to be built on top of these
modules. Accounts and orders are kept in memory only.

## Tests

```
pip install -e .[test]
pytest
```