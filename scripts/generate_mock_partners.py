import csv
import random
from typing import Optional

# Same city centre as the orders generator.
BASE_LAT = -17.824858
BASE_LON = 31.053028

FIELDS = [
    "partner_id",
    "lat",
    "lon",
    "availability",
    "rating",
    "max_concurrent_orders",
    "delivery_radius_km",
    "total_deliveries",
    "completed_deliveries",
]


def generate_mock_partners(filename: str = "mock_partners.csv", count: int = 100, seed: Optional[int] = None) -> str:
    rng = random.Random(seed)

    with open(filename, mode="w", newline="") as file:
        writer = csv.writer(file)
        writer.writerow(FIELDS)

        for i in range(count):
            partner_id = f"DP-{str(i + 1).zfill(3)}"

            # Scatter couriers around the city centre (roughly +/- 8 km)
            lat = BASE_LAT + (rng.random() - 0.5) * 0.15
            lon = BASE_LON + (rng.random() - 0.5) * 0.15

            # 75% available, the rest split between offline and on a break
            roll = rng.random()
            if roll < 0.75:
                availability = "AVAILABLE"
            elif roll < 0.9:
                availability = "OFFLINE"
            else:
                availability = "ON_BREAK"

            total = rng.randint(0, 400)
            completed = int(total * rng.uniform(0.85, 1.0))

            writer.writerow([
                partner_id,
                round(lat, 6),
                round(lon, 6),
                availability,
                round(rng.uniform(3.5, 5.0), 2),
                rng.randint(2, 5),
                rng.choice([5.0, 8.0, 10.0]),
                total,
                completed,
            ])

    print(f"Successfully generated {count} mock partners into '{filename}'.")
    return filename


if __name__ == "__main__":
    generate_mock_partners()
