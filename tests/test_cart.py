"""Tests for the cart aggregator."""

import random
import threading
from decimal import Decimal

from cart import CartAggregator, round_money

from .conftest import make_product


class TestAddItem:
    def test_first_add_creates_line_with_quantity_one(self):
        cart = CartAggregator()
        cart.add_item(make_product("a"))

        assert len(cart) == 1
        assert cart.lines[0].quantity == 1

    def test_adding_same_product_merges_into_one_line(self):
        cart = CartAggregator()
        product = make_product("a")
        cart.add_item(product)
        cart.add_item(product)
        cart.add_item(product)

        assert len(cart) == 1
        assert cart.lines[0].quantity == 3
        assert cart.item_count() == 3

    def test_lines_keep_insertion_order(self):
        cart = CartAggregator()
        for pid in ["c", "a", "b", "a"]:
            cart.add_item(make_product(pid))

        assert [line.product.id for line in cart] == ["c", "a", "b"]

    def test_out_of_stock_product_is_accepted(self):
        cart = CartAggregator()
        cart.add_item(make_product("gone", in_stock=False))

        assert cart.contains("gone")


class TestUpdateQuantity:
    def test_sets_quantity(self):
        cart = CartAggregator()
        cart.add_item(make_product("a"))
        cart.update_quantity("a", 7)

        assert cart.item_count() == 7

    def test_zero_removes_line(self):
        cart = CartAggregator()
        cart.add_item(make_product("a"))
        cart.update_quantity("a", 0)

        assert len(cart) == 0

    def test_negative_is_treated_as_removal(self):
        cart = CartAggregator()
        cart.add_item(make_product("a"))
        cart.add_item(make_product("b"))
        cart.update_quantity("a", -3)

        assert [line.product.id for line in cart] == ["b"]

    def test_unknown_product_is_noop(self):
        cart = CartAggregator()
        cart.add_item(make_product("a"))

        assert cart.update_quantity("missing", 5) is None
        assert cart.item_count() == 1
        assert not cart.contains("missing")


class TestRemoveAndClear:
    def test_remove_present_line(self):
        cart = CartAggregator()
        cart.add_item(make_product("a"))
        cart.remove_item("a")

        assert len(cart) == 0

    def test_remove_missing_line_is_noop(self):
        cart = CartAggregator()
        cart.add_item(make_product("a"))
        cart.remove_item("zzz")

        assert cart.item_count() == 1

    def test_clear(self):
        cart = CartAggregator()
        cart.add_item(make_product("a"))
        cart.add_item(make_product("b"))
        cart.clear()

        assert cart.item_count() == 0
        assert cart.total() == Decimal("0")


class TestTotals:
    def test_item_count_sums_quantities_not_lines(self):
        cart = CartAggregator()
        cart.add_item(make_product("a"))
        cart.add_item(make_product("b"))
        cart.update_quantity("b", 4)

        assert len(cart) == 2
        assert cart.item_count() == 5

    def test_total_is_price_times_quantity(self):
        cart = CartAggregator()
        cart.add_item(make_product("a", price="19.99"))
        cart.add_item(make_product("b", price="5.01"))
        cart.update_quantity("a", 3)

        assert cart.total() == Decimal("64.98")

    def test_total_keeps_full_precision_until_display(self):
        cart = CartAggregator()
        cart.add_item(make_product("a", price="0.335"))
        cart.update_quantity("a", 3)

        assert cart.total() == Decimal("1.005")
        assert cart.display_total() == Decimal("1.01")

    def test_snapshot_rounds_total(self):
        cart = CartAggregator()
        cart.add_item(make_product("a", price="0.125"))

        snap = cart.snapshot()
        assert snap.total == Decimal("0.13")
        assert snap.item_count == 1
        assert snap.lines[0].line_total == Decimal("0.125")

    def test_lines_are_copies(self):
        cart = CartAggregator()
        cart.add_item(make_product("a"))
        cart.lines[0].quantity = 99

        assert cart.item_count() == 1

    def test_returned_lines_do_not_alias_cart_state(self):
        cart = CartAggregator()
        product = make_product("a")
        cart.add_item(product).quantity = 50
        cart.add_item(product).quantity = 50
        cart.update_quantity("a", 3).quantity = 50

        assert cart.item_count() == 3

    def test_round_money(self):
        assert round_money(Decimal("2.345")) == Decimal("2.35")
        assert round_money(Decimal("2")) == Decimal("2.00")


class TestCartInvariant:
    """Random add/update/remove sequences against a plain-dict model."""

    def _run(self, seed: int):
        rng = random.Random(seed)
        products = [make_product(f"p{i}", price=f"{rng.randint(1, 9999) / 100:.2f}") for i in range(6)]
        cart = CartAggregator()
        model: dict[str, int] = {}

        for _ in range(200):
            product = rng.choice(products)
            op = rng.choice(["add", "add", "update", "remove", "clear_rarely"])
            if op == "add":
                cart.add_item(product)
                model[product.id] = model.get(product.id, 0) + 1
            elif op == "update":
                qty = rng.randint(-2, 6)
                cart.update_quantity(product.id, qty)
                if product.id in model:
                    if qty <= 0:
                        del model[product.id]
                    else:
                        model[product.id] = qty
            elif op == "remove":
                cart.remove_item(product.id)
                model.pop(product.id, None)
            elif rng.random() < 0.05:
                cart.clear()
                model.clear()

            lines = cart.lines
            ids = [line.product.id for line in lines]
            assert len(ids) == len(set(ids))
            assert all(line.quantity > 0 for line in lines)
            assert cart.item_count() == sum(line.quantity for line in lines) == sum(model.values())
            assert cart.total() == sum((line.product.price * line.quantity for line in lines), Decimal("0"))
            assert {line.product.id: line.quantity for line in lines} == model

    def test_random_sequences(self):
        for seed in range(25):
            self._run(seed)


class TestConcurrentWriters:
    def test_parallel_adds_keep_single_line(self):
        cart = CartAggregator()
        product = make_product("a", price="1.50")

        def worker():
            for _ in range(250):
                cart.add_item(product)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(cart) == 1
        assert cart.item_count() == 2000
        assert cart.total() == Decimal("3000.00")
