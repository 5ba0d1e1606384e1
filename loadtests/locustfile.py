"""SafeStore load tests.

Usage:
    # Every user class, web UI:
    locust -f loadtests/locustfile.py

    # Many shoppers racing for one scarce product:
    locust -f loadtests/locustfile.py StockContentionUser --headless -u 100 -r 20 -t 120s

    # Steady checkout traffic, CSV output for CI:
    locust -f loadtests/locustfile.py ShopperUser --headless -u 50 -r 5 -t 300s --csv=results/loadtest
"""

import logging
from collections import Counter

from locust import events

from loadtests.helpers.response import extract_error_detail
from loadtests.scenarios.checkout import ShopperUser, StockContentionUser  # noqa: F401

logger = logging.getLogger("loadtest")

# Outcomes of contended checkouts: 201 won the stock, 409 lost the race
contended_checkouts: Counter = Counter()


@events.request.add_listener
def record_failures(request_type, name, response, exception, **_kw):
    if exception:
        logger.error("%s %s raised %s", request_type, name, exception)
        return
    if response is None:
        return

    if name == "POST /orders (contended)":
        contended_checkouts[response.status_code] += 1
        if response.status_code == 409:
            return

    if response.status_code >= 400:
        logger.error("%s %s -> %s: %s", request_type, name, response.status_code, extract_error_detail(response))


@events.test_start.add_listener
def announce_start(environment, **_kw):
    contended_checkouts.clear()
    logger.info("Load test against %s", environment.host)


@events.test_stop.add_listener
def summarize_contention(environment, **_kw):
    if contended_checkouts:
        logger.info(
            "Contended checkouts: %d won, %d turned away for lack of stock, %d other",
            contended_checkouts[201],
            contended_checkouts[409],
            sum(contended_checkouts.values()) - contended_checkouts[201] - contended_checkouts[409],
        )
