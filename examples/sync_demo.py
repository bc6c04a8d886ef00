import argparse
import os
from dataclasses import dataclass, field
from typing import List, Optional

from airtable_sdk import AirtableClient, AirtableConfig, ListOptions, Record, Table, new_record, sort_by


@dataclass
class TaskFields:
    Name: str = ""
    Done: bool = False
    Tags: List[str] = field(default_factory=list)
    notes: Optional[str] = field(default=None, metadata={"airtable": "Notes"})


@dataclass
class Task(Record):
    fields: TaskFields = field(default_factory=TaskFields)


def _require_env(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise RuntimeError(f"Missing required env var: {name}")
    return value


def build_client() -> AirtableClient:
    config = AirtableConfig(
        api_key=_require_env("AIRTABLE_API_KEY"),
        base_id=_require_env("AIRTABLE_BASE_ID"),
        base_url=os.getenv("AIRTABLE_BASE_URL", "https://api.airtable.com/v0"),
    )
    return AirtableClient(config)


def main() -> None:
    parser = argparse.ArgumentParser(description="airtable_sdk sync example")
    parser.add_argument("--table", default="Tasks", help="Table name or id (default: Tasks)")
    parser.add_argument("--name", default="Hello from airtable-sdk (sync)")
    parser.add_argument("--keep", action="store_true", help="Do not delete the demo record")
    args = parser.parse_args()

    with build_client() as client:
        tasks = Table(client, args.table)

        task = new_record(Task(), {"Name": args.name, "Tags": ["demo"]})
        tasks.create(task)
        print(f"Created {task.id} at {task.created_time}")

        task.fields.Done = True
        tasks.update(task)
        print(f"Updated {task.id}: done={task.fields.Done}")

        open_tasks = tasks.list(Task, options=ListOptions(filter_by_formula="NOT({Done})", sort=sort_by("Name")))
        print(f"Open tasks: {len(open_tasks)}")

        if not args.keep:
            tasks.delete(task)
            print(f"Deleted {task.id}")


if __name__ == "__main__":
    main()
