from datetime import datetime, timedelta, timezone
from typing import Optional

import numpy as np
import pandas as pd

# Centre of the simulated city
CENTER_LAT = -17.824858
CENTER_LON = 31.053028


def generate_mock_orders(
    num_orders: int = 500,
    num_restaurants: int = 20,
    output_file: Optional[str] = "mock_orders.csv",
    window_minutes: int = 15,
    seed: Optional[int] = None,
    now: Optional[datetime] = None,
) -> pd.DataFrame:
    """
    Generates a dataset of freshly placed orders designed to exercise merging.
    A fixed set of restaurants and a short placement window make sure several
    orders per restaurant land close together in both space and time.
    """
    rng = np.random.default_rng(seed)
    now = now or datetime.now(timezone.utc)

    # 1. Restaurants within roughly 5 km of the centre
    restaurants = []
    for restaurant_index in range(num_restaurants):
        restaurants.append({
            "id": f"r_{str(restaurant_index + 1).zfill(3)}",
            "name": f"Restaurant {restaurant_index + 1}",
            "lat": CENTER_LAT + rng.uniform(-0.05, 0.05),
            "lon": CENTER_LON + rng.uniform(-0.05, 0.05),
        })

    data = []

    # 2. Orders: drop-offs mostly within ~2 km of the restaurant so merges happen
    for order_index in range(num_orders):
        restaurant = restaurants[int(rng.integers(0, num_restaurants))]
        spread = 0.015 if rng.random() < 0.7 else 0.06

        data.append({
            "order_id": f"o_{str(order_index + 1).zfill(6)}",
            "restaurant_id": restaurant["id"],
            "restaurant_name": restaurant["name"],
            "customer_id": f"c_{int(rng.integers(1000, 9999))}",
            "restaurant_lat": np.round(restaurant["lat"], 6),
            "restaurant_lon": np.round(restaurant["lon"], 6),
            "dropoff_lat": np.round(restaurant["lat"] + rng.uniform(-spread, spread), 6),
            "dropoff_lon": np.round(restaurant["lon"] + rng.uniform(-spread, spread), 6),
            "placed_at": (now - timedelta(minutes=int(rng.integers(0, window_minutes)))).isoformat(),
            "status": "PENDING" if rng.random() < 0.6 else "CONFIRMED",
        })

    df = pd.DataFrame(data)

    # 3. Save to CSV
    if output_file:
        df.to_csv(output_file, index=False)
        print(f"Generated {num_orders} orders and saved to '{output_file}'")

        print("\nTop 5 Restaurants (Merging Potential):")
        counts = df["restaurant_name"].value_counts().head(5)
        for name, count in counts.items():
            print(f"  {name}: {count} orders")

    return df


if __name__ == "__main__":
    generate_mock_orders(num_orders=500, num_restaurants=20)
