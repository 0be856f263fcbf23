import json
import sys

from tripsearch.nlp.analyzer import analyzer
from tripsearch.recall.query_builder import compile_query
from tripsearch.recall.visibility import apply_visibility
from tripsearch.search.service import clamp_limit, clamp_offset


def trace_query(query: str, user_id: str = ""):
    print(f"\n{'=' * 60}", flush=True)
    print(f"QUERY: {query}", flush=True)
    print(f"{'=' * 60}", flush=True)

    parsed = analyzer.parse(query)
    print("\n--- Parsed Query ---")
    print(parsed.model_dump_json(indent=2))

    apply_visibility(parsed.filters, user_id)
    body = compile_query(parsed, clamp_limit(None), clamp_offset(None))
    print(f"\n--- Elasticsearch Body ({parsed.intent.value}) ---")
    print(json.dumps(body, indent=2, ensure_ascii=False))


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("usage: python scripts/trace_query.py '<query>' [user_id]")
        sys.exit(1)
    trace_query(sys.argv[1], sys.argv[2] if len(sys.argv) > 2 else "")
