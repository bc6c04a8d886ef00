import argparse
import asyncio
import os

from airtable_sdk import AirtableConfig, AsyncAirtableClient, AsyncTable, DictRecord, ListOptions


def _require_env(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise RuntimeError(f"Missing required env var: {name}")
    return value


def build_client() -> AsyncAirtableClient:
    config = AirtableConfig(
        api_key=_require_env("AIRTABLE_API_KEY"),
        base_id=_require_env("AIRTABLE_BASE_ID"),
        base_url=os.getenv("AIRTABLE_BASE_URL", "https://api.airtable.com/v0"),
    )
    return AsyncAirtableClient(config)


async def async_main() -> None:
    parser = argparse.ArgumentParser(description="airtable_sdk async example")
    parser.add_argument("--table", default="Tasks", help="Table name or id (default: Tasks)")
    parser.add_argument("--view", help="Optional view to list from")
    parser.add_argument("--limit", type=int, default=20, help="Print at most this many records")
    args = parser.parse_args()

    client = build_client()
    try:
        table = AsyncTable(client, args.table)
        count = 0
        async for record in table.iter_records(DictRecord, ListOptions(view=args.view)):
            print(f"{record.id}: {record.fields}")
            count += 1
            if count >= args.limit:
                break
        print(f"Printed {count} records.")
    finally:
        await client.aclose()


if __name__ == "__main__":
    asyncio.run(async_main())
