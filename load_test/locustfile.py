"""
Bid History Read Load Test

Exercises the read endpoints the auction screens hit:
1. Full bid history + stats
2. Paginated history, following cursors to the end
3. Trend analysis
4. The caller's own cross-auction history (the expensive scan)

Usage:
    AUCTION_IDS=a1,a2,a3 USER_IDS=u1,u2 locust -f locustfile.py --host http://localhost:8000

Tokens are minted locally with the service's SECRET_KEY, so no auth service
is needed during the test.
"""

import os
import random

from locust import HttpUser, between, events, task

from auction_analytics.core.jwt import create_access_token

AUCTION_IDS = []
AUTH_TOKENS = []


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    """Read target auctions and pre-mint user tokens ONCE before the test."""
    AUCTION_IDS.extend(
        auction_id
        for auction_id in os.getenv("AUCTION_IDS", "").split(",")
        if auction_id
    )
    for user_id in os.getenv("USER_IDS", "").split(","):
        if user_id:
            AUTH_TOKENS.append(create_access_token(user_id))

    print("\n" + "=" * 70)
    print(f"   Auctions: {len(AUCTION_IDS)}")
    print(f"   Auth tokens ready: {len(AUTH_TOKENS)}")
    print("=" * 70 + "\n")


class BidHistoryViewer(HttpUser):
    """Virtual user browsing auction bid history."""

    wait_time = between(0.5, 2.0)

    def on_start(self):
        self.token = random.choice(AUTH_TOKENS) if AUTH_TOKENS else None

    def _auction(self):
        return random.choice(AUCTION_IDS) if AUCTION_IDS else None

    @task(5)
    def view_bid_history(self):
        auction_id = self._auction()
        if not auction_id:
            return
        self.client.get(
            f"/api/auctions/{auction_id}/bids",
            params={"limit": 100},
            name="/api/auctions/[id]/bids",
        )

    @task(3)
    def page_through_history(self):
        auction_id = self._auction()
        if not auction_id:
            return

        cursor = None
        for _ in range(10):
            params = {"page_size": 50}
            if cursor:
                params["cursor"] = cursor
            with self.client.get(
                f"/api/auctions/{auction_id}/bids/page",
                params=params,
                name="/api/auctions/[id]/bids/page",
                catch_response=True,
            ) as response:
                if response.status_code != 200:
                    response.failure(f"Status code: {response.status_code}")
                    return
                body = response.json()
                response.success()
            if not body["has_more"]:
                return
            cursor = body["cursor"]

    @task(2)
    def view_trends(self):
        auction_id = self._auction()
        if not auction_id:
            return
        self.client.get(
            f"/api/auctions/{auction_id}/bids/trends",
            name="/api/auctions/[id]/bids/trends",
        )

    @task(1)
    def view_my_bids(self):
        if not self.token:
            return
        self.client.get(
            "/api/users/me/bids",
            params={"limit": 50},
            headers={"Authorization": f"Bearer {self.token}"},
            name="/api/users/me/bids",
        )
