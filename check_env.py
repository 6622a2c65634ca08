#!/usr/bin/env python3
"""Helper script to check and create the .env file for the dispatch backend."""

from pathlib import Path
import os
import sys

TEMPLATE = """# Supabase Configuration (Required for stores, drivers and orders)
DISPATCH_SUPABASE_URL=https://your-project-id.supabase.co
DISPATCH_SUPABASE_KEY=your-service-role-key-here

# Distance Matrix (Required for route planning)
DISPATCH_GOOGLE_MAPS_API_KEY=your-maps-api-key-here
# DISPATCH_DISTANCE_REGION=in
# DISPATCH_ADDRESS_COUNTRY=India

# API Configuration
DISPATCH_API_PREFIX=/api
DISPATCH_DATA_ROOT=./data
"""

REQUIRED = ("DISPATCH_SUPABASE_URL", "DISPATCH_SUPABASE_KEY", "DISPATCH_GOOGLE_MAPS_API_KEY")


def _mask(value: str) -> str:
    return value[:12] + "..." if len(value) > 12 else value


def main() -> int:
    project_root = Path(__file__).parent
    env_file = project_root / ".env"

    if not env_file.exists():
        env_file.write_text(TEMPLATE, encoding="utf-8")
        print(f"Created template .env file at: {env_file}")
        print("Please edit .env and add your credentials.")
        return 1

    print(f"Found .env file at: {env_file}")
    for name in REQUIRED:
        value = os.getenv(name)
        print(f"  {name} (environment): {_mask(value) if value else 'not set'}")

    sys.path.insert(0, str(project_root / "src"))
    try:
        from courier_dispatch.config import settings
    except Exception as e:
        print(f"Error loading config: {e}")
        return 1

    configured = {
        "DISPATCH_SUPABASE_URL": settings.supabase_url,
        "DISPATCH_SUPABASE_KEY": settings.supabase_key,
        "DISPATCH_GOOGLE_MAPS_API_KEY": settings.google_maps_api_key,
    }
    missing = [name for name, value in configured.items() if not value]
    if missing:
        print(f"Missing configuration: {', '.join(missing)}")
        print("Make sure variables use the DISPATCH_ prefix and restart the backend after editing .env.")
        return 1

    print("All required settings are configured.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
