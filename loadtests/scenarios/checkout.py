"""Checkout load test scenarios.

ShopperUser walks the happy path: add to cart, check out, open a payment
intent. StockContentionUser has many shoppers race for a product with very
little stock; the run is healthy when 409s appear and stock never goes
negative.
"""

from locust import HttpUser, SequentialTaskSet, between, task

from loadtests.data_generators import admin_headers, checkout_data, product_data, shopper_headers
from loadtests.helpers.response import extract_error_detail


def _register_product(client, stock=None) -> str | None:
    with client.post(
        "/products",
        json=product_data(stock),
        headers=admin_headers(),
        catch_response=True,
        name="POST /products",
    ) as resp:
        if resp.status_code == 201:
            return resp.json()["product_id"]
        resp.failure(f"Register product failed: {resp.status_code}: {extract_error_detail(resp)}")
        return None


class CheckoutJourney(SequentialTaskSet):
    """Add Item -> Check Out -> Create Payment Intent."""

    def on_start(self):
        self.headers = shopper_headers()
        self.product_id = _register_product(self.client)
        self.order_id = None
        if self.product_id is None:
            self.interrupt()

    @task
    def add_to_cart(self):
        with self.client.post(
            "/cart/items",
            json={"product_id": self.product_id, "quantity": 2},
            headers=self.headers,
            catch_response=True,
            name="POST /cart/items",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Add to cart failed: {resp.status_code}: {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def check_out(self):
        with self.client.post(
            "/orders",
            json=checkout_data(),
            headers=self.headers,
            catch_response=True,
            name="POST /orders",
        ) as resp:
            if resp.status_code == 201:
                self.order_id = resp.json()["order_id"]
            else:
                resp.failure(f"Checkout failed: {resp.status_code}: {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def create_payment_intent(self):
        with self.client.post(
            "/payments/intents",
            json={"order_id": self.order_id},
            headers=self.headers,
            catch_response=True,
            name="POST /payments/intents",
        ) as resp:
            if resp.status_code != 201:
                resp.failure(f"Payment intent failed: {resp.status_code}: {extract_error_detail(resp)}")

    @task
    def done(self):
        self.interrupt()


class ShopperUser(HttpUser):
    wait_time = between(1, 3)
    tasks = [CheckoutJourney]


class StockContentionUser(HttpUser):
    """Every user checks out 3 units of the same scarce product."""

    wait_time = between(0.1, 0.5)
    scarce_product_id: str | None = None

    def on_start(self):
        if StockContentionUser.scarce_product_id is None:
            StockContentionUser.scarce_product_id = _register_product(self.client, stock=20)

    @task
    def race_for_stock(self):
        headers = shopper_headers()
        self.client.post(
            "/cart/items",
            json={"product_id": self.scarce_product_id, "quantity": 3},
            headers=headers,
            name="POST /cart/items (contended)",
        )
        with self.client.post(
            "/orders",
            json=checkout_data(),
            headers=headers,
            catch_response=True,
            name="POST /orders (contended)",
        ) as resp:
            if resp.status_code in (201, 409):
                resp.success()
            else:
                resp.failure(f"Unexpected checkout result: {resp.status_code}: {extract_error_detail(resp)}")

        with self.client.get(
            f"/products/{self.scarce_product_id}",
            catch_response=True,
            name="GET /products/{id}",
        ) as resp:
            if resp.status_code == 200 and resp.json()["stock"] < 0:
                resp.failure("Stock went negative")
