"""
Seed demo incidents by POSTing citizen reports to the /incidents/report API.

Run with the API already running (python run_api.py). Optionally set TRIAGE_API_URL in env.
A few reports are repeated from a few metres away so the tight-tier merge shows up
(corroboration > 1) next to fresh incidents.
Usage: python seed_reports.py
"""

import os
import time

import httpx

TRIAGE_API_URL = (os.environ.get("TRIAGE_API_URL") or "http://localhost:8000").rstrip("/")

# San Francisco demo reports: varied categories, a couple of near-duplicates to merge
DEMO_REPORTS = [
    {"category": "Fire", "lat": 37.7749, "lng": -122.4194, "address": "1250 Market Street, San Francisco, CA 94102",
     "description": "Large fire at residential apartment complex. Flames visible from 3rd and 4th floors. Residents evacuating."},
    {"category": "Fire", "lat": 37.7751, "lng": -122.4192, "address": "1250 Market Street, San Francisco, CA 94102",
     "description": "Heavy smoke from the apartment building on Market, people on the balconies."},
    {"category": "Medical", "lat": 37.7854, "lng": -122.4089, "address": "865 Market St, San Francisco, CA 94103",
     "description": "Adult male collapsed near food court. Bystander performing CPR. Patient unresponsive."},
    {"category": "Accident", "lat": 37.7917, "lng": -122.4027,
     "description": "5-car pileup on Highway 101 Northbound. At least 2 vehicles overturned. Fuel leak detected."},
    {"category": "Crime", "lat": 37.7873, "lng": -122.4069, "address": "Union Square, San Francisco, CA",
     "description": "Two armed suspects in a jewelry store. Employees held at gunpoint. Silent alarm triggered."},
    {"category": "Fire", "lat": 37.7641, "lng": -122.4219,
     "description": "Grease fire in commercial kitchen. Sprinkler system activated. Staff evacuated."},
    {"category": "Medical", "lat": 37.7598, "lng": -122.4352,
     "description": "Child with anaphylaxis after lunch at school cafeteria. EpiPen administered, breathing labored."},
    {"category": "Infrastructure", "lat": 37.7757, "lng": -122.4486,
     "description": "Strong smell of natural gas in neighborhood, seems to come from a construction site."},
    {"category": "Accident", "lat": 37.7945, "lng": -122.3992,
     "description": "Cyclist collided with pedestrian at crosswalk. Pedestrian has leg injury, conscious and alert."},
    {"category": "Crime", "lat": 37.7694, "lng": -122.4556,
     "description": "Someone broke into a parked car and fled on foot toward the park. Alarm still sounding."},
    {"category": "Natural", "lat": 37.7565, "lng": -122.4312,
     "description": "Large tree branch fell and is blocking the sidewalk and part of the bike lane."},
    {"category": "Other", "lat": 37.7881, "lng": -122.4131,
     "description": "Unattended backpack at bus stop for over 2 hours. Nobody has claimed it."},
    {"category": "Medical", "lat": 37.7855, "lng": -122.4090, "address": "865 Market St, San Francisco, CA 94103",
     "description": "Man down by the food court, someone doing chest compressions."},
]


def main():
    print(f"Seeding demo reports via {TRIAGE_API_URL}/incidents/report")
    client = httpx.Client(timeout=30.0)
    try:
        for i, r in enumerate(DEMO_REPORTS):
            payload = {
                "category": r["category"],
                "description": r["description"],
                "location": {"lat": r["lat"], "lng": r["lng"], "address": r.get("address", "")},
                "reported_by": "demo-seed",
            }
            resp = client.post(f"{TRIAGE_API_URL}/incidents/report", json=payload)
            if resp.is_success:
                data = resp.json()
                inc = data.get("incident") or {}
                dups = len(data.get("duplicates") or [])
                print(
                    f"  [{i+1}/{len(DEMO_REPORTS)}] {data.get('status')} incident_id={inc.get('incident_id')} "
                    f"corroboration={inc.get('corroboration_count')} duplicates={dups}"
                )
            else:
                print(f"  [{i+1}/{len(DEMO_REPORTS)}] FAILED {resp.status_code} {resp.text[:200]}")
            time.sleep(0.3)
        print("Done. GET /incidents/priority-queue to see the ranked queue.")
    finally:
        client.close()


if __name__ == "__main__":
    main()
