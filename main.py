"""Prime Research

Simple CLI for running research queries.
"""

import argparse
import asyncio

from app.agents.orchestrator import ResearchOrchestrator
from app.models.events import EventKind
from app.models.research import ResearchMode


async def run_research(query: str, mode: str | None = None):
    """Run research on the given query and print the stream as it arrives."""
    resolved = ResearchMode.resolve(mode)
    print(f"Research query: {query} ({resolved.value})")
    print("-" * 50)

    orchestrator = ResearchOrchestrator()

    async for event in orchestrator.research(query, resolved.value):
        if event.kind is EventKind.STATUS:
            data = event.payload
            progress = data.get("progress")
            step = f" [{progress['current']}/{progress['total']}]" if progress else ""
            print(f"[~] {data.get('stage')}{step}: {data.get('message')}")

        elif event.kind is EventKind.RESEARCH:
            data = event.payload
            metadata = data.get("metadata", {})
            print(f"\n[*] Research Complete!")
            print(f"   Sources: {metadata.get('sourcesCount', 0)}")
            print(f"   Confidence: {metadata.get('confidence', 0)}")
            print(f"\n{'='*50}")
            print("SUMMARY:")
            print(f"{'='*50}")
            print(data.get("summary", ""))

            insights = data.get("keyInsights", [])
            if insights:
                print("\nKEY INSIGHTS:")
                for insight in insights:
                    print(f"  - {insight}")

            questions = data.get("suggestedQuestions", [])
            if questions:
                print("\nFOLLOW-UP QUESTIONS:")
                for question in questions:
                    print(f"  ? {question}")

        elif event.kind is EventKind.ERROR:
            print(f"\n[!] Error: {event.payload or 'Unknown error'}")


def main():
    parser = argparse.ArgumentParser(description="Prime Research CLI")
    parser.add_argument("--query", "-q", required=True, help="Research query")
    parser.add_argument(
        "--mode",
        "-m",
        choices=[mode.value for mode in ResearchMode],
        default=ResearchMode.WEB.value,
        help="Research mode (default: web)",
    )

    args = parser.parse_args()

    asyncio.run(run_research(args.query, args.mode))


if __name__ == "__main__":
    main()
