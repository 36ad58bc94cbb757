"""
Data Loader Script - Loads sample_roster.json into an account via the API.

Signs in to (or creates) the demo account, then adds every student from
the sample file. Students whose code already exists are reported and left
alone, so the script can be re-run safely.

Usage:
    python load_data.py                              # Uses default URL
    python load_data.py http://localhost:8000         # Custom API URL

Environment:
    API_URL, DEMO_ACCOUNT (phone or email), DEMO_SECRET (access code)
"""

import json
import os
import sys

import httpx


def main():
    api_url = sys.argv[1] if len(sys.argv) > 1 else os.getenv("API_URL", "http://localhost:8000")
    account = os.getenv("DEMO_ACCOUNT", "15550001111")
    secret = os.getenv("DEMO_SECRET", "1234")

    data_file = os.path.join(os.path.dirname(os.path.abspath(__file__)), "sample_roster.json")
    if not os.path.exists(data_file):
        print("Error: Could not find sample_roster.json")
        sys.exit(1)

    print(f"Loading data from: {data_file}")
    with open(data_file, 'r') as f:
        students = json.load(f)

    with httpx.Client(base_url=api_url, timeout=30.0) as client:
        step = client.post("/api/auth/identify", json={"identifier": account})
        step.raise_for_status()
        if step.json()["step"] == "create_secret":
            print(f"Creating account {account}")
            client.post("/api/auth/register",
                        json={"identifier": account, "secret": secret}).raise_for_status()

        headers = {"X-Account-Id": account, "X-Account-Secret": secret}
        print(f"Adding {len(students)} students to {account}")
        print()

        added = 0
        for student in students:
            resp = client.post("/api/students", json=student, headers=headers)
            if resp.status_code == 201:
                added += 1
                print(f"  ✅ {student['code']}: {student['name']}")
            elif resp.status_code == 409:
                print(f"  🔁 {student['code']}: already in roster")
            else:
                print(f"  ❌ {student['code']}: {resp.status_code} {resp.text}")

    print()
    print("=" * 60)
    print(f"  Added: {added} of {len(students)}")
    print("=" * 60)


if __name__ == "__main__":
    main()
