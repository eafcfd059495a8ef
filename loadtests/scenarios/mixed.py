"""Mixed storefront workload scenario.

Combines the shopper journeys with weights that model realistic retail
traffic. This is the recommended scenario for load baseline testing.
"""

from locust import HttpUser, between

from loadtests.scenarios.shopping import (
    BrowseAndAbandonJourney,
    CancellationJourney,
    CheckoutJourney,
    CouponCheckoutJourney,
    FulfilmentJourney,
)


class MixedWorkloadUser(HttpUser):
    """Realistic mixed workload simulating concurrent shoppers and admins.

    - Browsing and abandoning carts: most common
    - Plain checkout: the conversion path
    - Coupon checkout: exercises validation and redemption
    - Fulfilment: admin status changes and payments
    - Cancellation: stock release
    """

    wait_time = between(0.5, 3.0)
    tasks = {
        BrowseAndAbandonJourney: 8,
        CheckoutJourney: 5,
        CouponCheckoutJourney: 3,
        FulfilmentJourney: 3,
        CancellationJourney: 2,
    }
