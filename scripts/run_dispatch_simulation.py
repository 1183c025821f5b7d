import os
import time
from typing import Callable, Dict, List, Optional, Tuple

import pandas as pd

from common.settings import configure_logging, load_settings
from couriers.models import DeliveryPartner
from dispatch.models import Delivery, DeliveryStatus
from dispatch.service import DispatchService
from orders.models import Order
from scripts.generate_mock_data import generate_mock_orders
from scripts.generate_mock_partners import generate_mock_partners

# Happy path a courier walks once assigned.
HAPPY_PATH = [
    DeliveryStatus.ACCEPTED,
    DeliveryStatus.PICKED_UP,
    DeliveryStatus.IN_TRANSIT,
    DeliveryStatus.DELIVERED,
]


def load_orders(filepath: str, limit: Optional[int] = None) -> Tuple[List[Order], Dict[str, Tuple[float, float]]]:
    """
    Returns the orders plus restaurant_id -> pickup coordinates.
    """
    df = pd.read_csv(filepath)
    if limit is not None:
        df = df.head(limit)
    df["placed_at"] = pd.to_datetime(df["placed_at"], utc=True)

    orders = []
    pickups = {}
    for row in df.itertuples(index=False):
        orders.append(
            Order.new(
                row.restaurant_id,
                row.customer_id,
                float(row.dropoff_lat),
                float(row.dropoff_lon),
                order_id=row.order_id,
                placed_at=row.placed_at.to_pydatetime(),
                status=row.status,
            )
        )
        pickups[row.restaurant_id] = (float(row.restaurant_lat), float(row.restaurant_lon))
    return orders, pickups


def load_partners(filepath: str) -> List[DeliveryPartner]:
    df = pd.read_csv(filepath)
    partners = []
    for row in df.itertuples(index=False):
        partners.append(
            DeliveryPartner.new(
                row.partner_id,
                float(row.lat),
                float(row.lon),
                row.availability,
                rating=float(row.rating),
                max_concurrent_orders=int(row.max_concurrent_orders),
                delivery_radius_km=float(row.delivery_radius_km),
                total_deliveries=int(row.total_deliveries),
                completed_deliveries=int(row.completed_deliveries),
            )
        )
    return partners


def run_simulation(
    orders_file: str,
    partners_file: str,
    *,
    service: Optional[DispatchService] = None,
    complete_when: Optional[Callable[[Delivery], bool]] = None,
    output_file: Optional[str] = None,
) -> pd.DataFrame:
    """
    Loads both CSVs, merges orders per restaurant, creates and auto-assigns a
    delivery per order and walks assigned deliveries through the happy path.

    `complete_when` decides whether a courier finishes a delivery (True) or it
    fails in transit (False). Defaults to always completing.
    """
    print("=== STARTING END-TO-END DISPATCH SIMULATION ===")
    service = service or DispatchService()
    complete_when = complete_when or (lambda delivery: True)

    # 1. Load Data
    orders, pickups = load_orders(orders_file)
    for partner in load_partners(partners_file):
        service.register_partner(partner)
    for order in orders:
        service.place_order(order)
    print(f"Loaded {len(orders)} Orders and {len(service.couriers)} Partners.\n")

    # 2. Merge per restaurant, as of the newest order
    now = max(order.placed_at for order in orders)
    start_time = time.time()
    records = []
    for restaurant_id in sorted(pickups):
        records.extend(service.cluster_and_merge(restaurant_id, now=now))
    merged_orders = sum(len(r.order_ids) for r in records)
    print(f"Merged {merged_orders} orders into {len(records)} groups in {time.time() - start_time:.2f}s.\n")

    # 3. Deliveries + assignment
    rows = []
    for order in orders:
        stored = service.orders.get_order(order.id)
        delivery = service.create_delivery(order.id, pickups[order.restaurant_id], order.delivery_coordinates)

        final_status = delivery.status
        if delivery.status == DeliveryStatus.ASSIGNED:
            path = HAPPY_PATH if complete_when(delivery) else HAPPY_PATH[:-1] + [DeliveryStatus.FAILED]
            for status in path:
                delivery = service.update_delivery_status(delivery.id, status)
            final_status = delivery.status

        rows.append({
            "order_id": order.id,
            "restaurant_id": order.restaurant_id,
            "merge_group_id": stored.merge_group_id or "",
            "delivery_id": delivery.id,
            "partner_id": delivery.partner_id or "UNASSIGNED",
            "estimated_time_minutes": delivery.estimated_time_minutes,
            "final_status": final_status.value,
        })

    results = pd.DataFrame(rows)
    if output_file:
        results.to_csv(output_file, index=False)

    delivered = int((results["final_status"] == DeliveryStatus.DELIVERED.value).sum())
    pending = len(service.coordinator.pending_deliveries())
    busiest = max(
        (p.id for p in service.couriers.values()),
        key=lambda pid: len(service.deliveries.for_partner(pid)),
        default=None,
    )

    print("\n=== SIMULATION COMPLETE ===")
    print(f"Orders Merged: {merged_orders} / {len(orders)} ({len(records)} groups)")
    print(f"Deliveries Completed: {delivered} / {len(orders)}")
    print(f"Still Waiting For A Partner: {pending}")
    if busiest is not None:
        print(f"Busiest Partner: {busiest} ({len(service.deliveries.for_partner(busiest))} deliveries)")
    if output_file:
        print(f"Results written to '{output_file}'.")
    return results


if __name__ == "__main__":
    settings = load_settings()
    configure_logging(settings.log_level)

    base_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    orders_path = os.path.join(base_dir, "mock_orders.csv")
    partners_path = os.path.join(base_dir, "mock_partners.csv")

    generate_mock_orders(num_orders=60, num_restaurants=8, output_file=orders_path, seed=7)
    generate_mock_partners(partners_path, count=40, seed=7)

    run_simulation(
        orders_path,
        partners_path,
        service=DispatchService.from_settings(settings),
        output_file=os.path.join(base_dir, "dispatch_results.csv"),
    )
