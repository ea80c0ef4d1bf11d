"""Static reference data: monitored hubs, vessel roster, network locations."""

from __future__ import annotations

from .schemas import Route, Shipment

# Major ports and logistics hubs polled for weather, "City,CC" form.
WEATHER_HUBS = [
    "Shanghai,CN",
    "Rotterdam,NL",
    "Singapore,SG",
    "Los Angeles,US",
    "Hamburg,DE",
    "Dubai,AE",
    "Mumbai,IN",
    "Busan,KR",
    "Antwerp,BE",
    "Long Beach,US",
]

VESSELS = [
    {"id": "VESSEL001", "name": "Ever Given", "location": "Shanghai", "status": "berthed"},
    {"id": "VESSEL002", "name": "MSC Oscar", "location": "Rotterdam", "status": "anchored"},
    {"id": "VESSEL003", "name": "CMA CGM Marco Polo", "location": "Singapore", "status": "departed"},
    {"id": "VESSEL004", "name": "Maersk Mc-Kinney Moller", "location": "Los Angeles", "status": "berthed"},
    {"id": "VESSEL005", "name": "OOCL Hong Kong", "location": "Hamburg", "status": "in_transit"},
    {"id": "VESSEL006", "name": "COSCO Shipping Universe", "location": "Dubai", "status": "anchored"},
    {"id": "VESSEL007", "name": "MSC Gulsun", "location": "Mumbai", "status": "berthed"},
    {"id": "VESSEL008", "name": "HMM Algeciras", "location": "Busan", "status": "departed"},
    {"id": "VESSEL009", "name": "Ever Ace", "location": "Antwerp", "status": "in_transit"},
    {"id": "VESSEL010", "name": "MSC Irina", "location": "Long Beach", "status": "anchored"},
]

# (eta_min, eta_max, delay_min, delay_max) in hours, inclusive.
VESSEL_STATUS_BOUNDS = {
    "berthed": (1, 24, 0, 0),
    "anchored": (12, 60, 6, 30),
    "departed": (24, 192, 2, 14),
    "in_transit": (48, 384, 12, 60),
}
DEFAULT_VESSEL_BOUNDS = (12, 84, 6, 30)

PORT_HUBS = [
    {"name": "Port of Shanghai", "status": "congested", "wait_time_hours": 48},
    {"name": "Port of Rotterdam", "status": "normal", "wait_time_hours": 12},
    {"name": "Port of Singapore", "status": "congested", "wait_time_hours": 36},
    {"name": "Port of Los Angeles", "status": "normal", "wait_time_hours": 8},
    {"name": "Port of Hamburg", "status": "normal", "wait_time_hours": 6},
    {"name": "Port of Dubai", "status": "normal", "wait_time_hours": 4},
    {"name": "Port of Mumbai", "status": "congested", "wait_time_hours": 24},
    {"name": "Port of Busan", "status": "normal", "wait_time_hours": 10},
    {"name": "Port of Antwerp", "status": "normal", "wait_time_hours": 8},
    {"name": "Port of Long Beach", "status": "congested", "wait_time_hours": 30},
]

SIMULATED_HEADLINES = [
    {
        "title": "Dock Workers Strike at Port of Shanghai Affects Global Supply Chains",
        "description": (
            "A major strike by dock workers at the Port of Shanghai has caused significant delays "
            "in container processing, with vessels waiting up to 48 hours to berth."
        ),
        "source": "Maritime News",
        "hours_ago": 0,
    },
    {
        "title": "Severe Weather Conditions Force Port of Rotterdam to Reduce Operations",
        "description": (
            "Heavy storms and high winds have forced the Port of Rotterdam to reduce operations "
            "by 60% for the next 48 hours."
        ),
        "source": "Port Authority",
        "hours_ago": 2,
    },
    {
        "title": "New Sanctions Impact Shipping Routes Through Black Sea",
        "description": (
            "New sanctions are pushing carriers to reroute around the Black Sea, "
            "adding 3-5 days to transit times."
        ),
        "source": "Trade Journal",
        "hours_ago": 4,
    },
    {
        "title": "Container Shortage Crisis Worsens in Asia-Pacific Region",
        "description": (
            "Major Asia-Pacific ports report empty container shortages of up to 40%, "
            "delaying cargo loading and lifting freight rates."
        ),
        "source": "Logistics Weekly",
        "hours_ago": 6,
    },
    {
        "title": "Major Cyber Attack Disrupts Port Management Systems in Singapore",
        "description": (
            "A cyber attack has disrupted vessel scheduling and cargo processing "
            "systems at the Port of Singapore."
        ),
        "source": "Cyber Security News",
        "hours_ago": 8,
    },
]

LOCATIONS = {
    "port_singapore": {"name": "Singapore", "type": "port", "region": "Southeast Asia"},
    "port_rotterdam": {"name": "Rotterdam", "type": "port", "region": "Europe"},
    "port_los_angeles": {"name": "Los Angeles", "type": "port", "region": "North America"},
    "port_shanghai": {"name": "Shanghai", "type": "port", "region": "Asia"},
    "supplier_china": {"name": "Shenzhen Components", "type": "supplier", "region": "Asia"},
    "supplier_india": {"name": "Chennai Textiles", "type": "supplier", "region": "Asia"},
    "supplier_germany": {"name": "Stuttgart Machinery", "type": "supplier", "region": "Europe"},
    "customer_usa": {"name": "Chicago Distribution", "type": "customer", "region": "North America"},
    "customer_uk": {"name": "London Retail", "type": "customer", "region": "Europe"},
    "customer_uae": {"name": "Dubai Trading", "type": "customer", "region": "Middle East"},
}


def _leg(shipment_id: str, seq: int, mode: str, hours: float, cost: float, src: str, dst: str) -> Route:
    return Route(
        shipment_id=shipment_id,
        mode=mode,
        travel_time_est=hours,
        cost_est=cost,
        from_location_type=src,
        to_location_type=dst,
        sequence_number=seq,
    )


def default_shipments() -> list[Shipment]:
    """Reference shipment set used when no shipment source is available."""
    return [
        Shipment(
            id="shipment_001",
            supplier="supplier_china",
            origin="port_shanghai",
            destination="port_los_angeles",
            waypoints=["port_shanghai", "port_singapore", "port_los_angeles"],
            routes=[
                _leg("shipment_001", 1, "sea", 96, 8500, "port", "port"),
                _leg("shipment_001", 2, "sea", 240, 14000, "port", "port"),
            ],
        ),
        Shipment(
            id="shipment_002",
            supplier="supplier_germany",
            origin="port_rotterdam",
            destination="port_los_angeles",
            waypoints=["port_rotterdam", "port_los_angeles"],
            routes=[_leg("shipment_002", 1, "sea", 336, 12000, "port", "port")],
        ),
        Shipment(
            id="shipment_003",
            supplier="supplier_india",
            origin="supplier_india",
            destination="customer_uk",
            waypoints=["supplier_india", "port_singapore", "port_rotterdam", "customer_uk"],
            routes=[
                _leg("shipment_003", 1, "road", 20, 900, "supplier", "port"),
                _leg("shipment_003", 2, "sea", 400, 9000, "port", "port"),
                _leg("shipment_003", 3, "rail", 30, 1500, "port", "warehouse"),
                _leg("shipment_003", 4, "road", 8, 400, "warehouse", "customer"),
            ],
        ),
        Shipment(
            id="shipment_004",
            supplier="supplier_china",
            origin="supplier_china",
            destination="customer_uae",
            waypoints=["supplier_china", "port_singapore", "customer_uae"],
            routes=[
                _leg("shipment_004", 1, "road", 12, 600, "supplier", "port"),
                _leg("shipment_004", 2, "air", 18, 11000, "port", "customer"),
            ],
        ),
        Shipment(
            id="shipment_005",
            supplier="supplier_germany",
            origin="supplier_germany",
            destination="customer_usa",
            waypoints=["supplier_germany", "port_rotterdam", "port_los_angeles", "customer_usa"],
            routes=[
                _leg("shipment_005", 1, "rail", 14, 2200, "supplier", "port"),
                _leg("shipment_005", 2, "sea", 336, 12500, "port", "port"),
                _leg("shipment_005", 3, "road", 50, 3000, "port", "customer"),
            ],
        ),
    ]
