"""
Command-line front end for the generation service.

  declarative-bff generate --schema schema.graphql --story story.md
  declarative-bff history --limit 5
"""
import argparse
import sys
from typing import List, Optional

from backend.client import QueryClient

SCHEMA_EXTENSIONS = (".graphql", ".gql", ".txt", ".json")
STORY_EXTENSIONS = (".txt", ".md")


def parse_cli_args(argv: Optional[List[str]] = None):
    parser = argparse.ArgumentParser(
        description="Generate GraphQL queries from a schema and a user story"
    )
    parser.add_argument(
        "--server",
        type=str,
        default="http://localhost:8000",
        help="Base URL of the generation service",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("generate", help="Generate a query")
    gen.add_argument("--schema", required=True, help="GraphQL schema file (%s)" % ", ".join(SCHEMA_EXTENSIONS))
    gen.add_argument("--story", required=True, help="User story file (%s)" % ", ".join(STORY_EXTENSIONS))

    hist = sub.add_parser("history", help="List recent generations")
    hist.add_argument("--limit", type=int, default=10, help="Number of records to show")
    return parser.parse_args(argv)


def _read_text(path: str) -> str:
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def main(argv: Optional[List[str]] = None, client: Optional[QueryClient] = None) -> int:
    args = parse_cli_args(argv)
    client = client or QueryClient(base_url=args.server)

    if args.command == "generate":
        try:
            schema = _read_text(args.schema)
            story = _read_text(args.story)
        except OSError as e:
            print(f"Error: could not read input file: {e}", file=sys.stderr)
            return 1
        result = client.generate(schema, story)
        if not result.success:
            print(f"Error: {result.error}", file=sys.stderr)
            return 1
        print(result.data)
        return 0

    records = client.list_history(args.limit)
    if not records:
        print("No history yet.")
        return 0
    for rec in records:
        print(f"#{rec.id}  {rec.created_at.isoformat()}")
        print(rec.generated_query)
        print()
    return 0


if __name__ == "__main__":
    sys.exit(main())
