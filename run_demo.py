#!/usr/bin/env python3
"""
Transformer Guide Demo Script

This script walks through the pieces behind the interactive transformer course:
1. The attention playground (tokens -> per-head attention heatmaps)
2. The scroll-spy that follows the reader through the course page
3. The course content store (sections, quiz, progress)
4. The REST API server

Usage:
    python run_demo.py [mode] [options]

    Modes:
        quick        - Attention, scroll-spy and content demos (default)
        attention    - Only the attention playground
        interactive  - Type sentences and see their attention heatmaps
        scroll       - Only the scroll-spy walkthrough
        content      - Only the content store
        serve        - Start the REST API server

Example:
    python run_demo.py attention --sentence "Attention is all you need." --heads 4
"""

import argparse
import os
import sys

import numpy as np

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from transformer_guide.attention import (
    format_attention_matrix,
    generate_attention_weights,
)
from transformer_guide.config import AppConfig
from transformer_guide.content import MemoryStorage
from transformer_guide.logging_utils import create_logger
from transformer_guide.scroll_spy import ScrollSpy, ScrollSpyOptions, SectionRef
from transformer_guide.viewport import Rect, Viewport, ViewportRegion


def print_header(text: str):
    """Print a formatted header."""
    print()
    print("=" * 60)
    print(text)
    print("=" * 60)
    print()


def print_section(text: str):
    """Print a section divider."""
    print()
    print("-" * 40)
    print(text)
    print("-" * 40)


def show_attention(
    sentence: str,
    head_count: int,
    temperature: float,
    split_punctuation: bool = True,
    seed: int = 42,
):
    """Generate and print attention heatmaps for one sentence."""
    result = generate_attention_weights(
        sentence,
        head_count=head_count,
        temperature=temperature,
        split_punctuation=split_punctuation,
        rng=np.random.default_rng(seed),
    )

    if not result.tokens:
        print("Enter some text to visualize attention.")
        return result

    print(f"Tokens ({result.num_tokens}): {result.tokens}")
    for head_index, pattern in enumerate(result.patterns):
        print_section(f"Head {head_index} - '{pattern}' pattern")
        print(format_attention_matrix(result.tokens, result.head(head_index)))

    row_sums = result.weights.sum(axis=-1)
    print()
    print(f"Every row sums to 1: {np.allclose(row_sums, 1.0)}")
    return result


def run_attention_demo(config: AppConfig, args):
    """Attention playground walkthrough."""
    print_header("Attention Playground")
    print("Each head turns the token sequence into an N x N matrix.")
    print("Row i shows how token i spreads its attention over all tokens.")
    print()
    show_attention(
        args.sentence or config.default_sentence,
        head_count=args.heads or config.default_heads,
        temperature=args.temperature or config.default_temperature,
        split_punctuation=not args.no_split_punctuation,
        seed=args.seed,
    )


def run_interactive(config: AppConfig, args):
    """Interactive attention heatmaps."""
    print_header("Interactive Attention Playground")
    print("Enter a sentence and see its attention heatmaps.")
    print("Type 'quit' to exit.")
    print()

    while True:
        try:
            sentence = input("Sentence: ").strip()
        except (EOFError, KeyboardInterrupt):
            print("\nGoodbye!")
            break

        if sentence.lower() in ["quit", "exit", "q"]:
            print("Goodbye!")
            break

        show_attention(
            sentence,
            head_count=args.heads or config.default_heads,
            temperature=args.temperature or config.default_temperature,
            split_punctuation=not args.no_split_punctuation,
            seed=args.seed,
        )
        print()


def run_scroll_demo(storage: MemoryStorage):
    """Scroll through the course page and watch the active section."""
    print_header("Scroll Spy")
    print("The course page stacks its sections vertically. As the reader")
    print("scrolls, the first section with at least 20% on screen is active.")
    print()

    # Lay out every section as a 700px tall block
    section_height = 700.0
    sections = []
    for index, section in enumerate(storage.get_all_sections()):
        region = ViewportRegion(
            Rect(top=index * section_height, left=0, width=800, height=section_height),
            name=section.slug,
        )
        sections.append(SectionRef(section.slug, region))

    viewport = Viewport(
        width=800, height=600, document_height=section_height * len(sections)
    )
    spy = ScrollSpy(viewport.observer_factory, ScrollSpyOptions())
    spy.subscribe(lambda section_id: print(f"  -> URL fragment is now #{section_id}"))

    with spy.register(sections):
        print(f"Initial active section: {spy.active_id}")
        for scroll_top in (300, 600, 1300, 1900, 2400):
            print(f"Scroll to y={scroll_top}:")
            viewport.scroll_to(scroll_top)
            print(f"  active = {spy.active_id}")

        print_section("Navigation click")
        spy.sync_from_fragment("#introduction")
        print(f"Fragment: {spy.fragment}")

    print()
    print(f"Detached: {not spy.attached}, observers left: {viewport.observer_count}")


def run_content_demo(storage: MemoryStorage):
    """Course content, quiz and progress."""
    print_header("Course Content")
    for section in storage.get_all_sections():
        print(f"{section.order}. {section.title} (#{section.slug})")

    print_section("Quiz")
    for question in storage.get_quiz_questions():
        print(f"Q{question.id}: {question.question}")
        for option in question.options:
            marker = "*" if option.id == question.correct_option else " "
            print(f"  {marker} {option.id}) {option.text}")

    print_section("Progress")
    user = storage.create_user("demo", "demo")
    progress = storage.update_user_progress(
        user.id, {"completed_sections": ["introduction"], "progress": 25}
    )
    print(f"{user.username}: {progress.progress}% done, "
          f"completed {progress.completed_sections}")


def main():
    parser = argparse.ArgumentParser(description="Transformer Guide Demo")
    parser.add_argument(
        "mode",
        nargs="?",
        default="quick",
        choices=["quick", "attention", "interactive", "scroll", "content", "serve"],
        help="Demo mode to run",
    )
    parser.add_argument("--sentence", type=str, default=None, help="Input sentence")
    parser.add_argument("--heads", type=int, default=None, help="Number of heads")
    parser.add_argument(
        "--temperature", type=float, default=None, help="Local pattern temperature"
    )
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    parser.add_argument(
        "--no-split-punctuation",
        action="store_true",
        help="Keep punctuation attached to words",
    )
    args = parser.parse_args()

    config = AppConfig.from_env()
    create_logger("transformer_guide", level=config.log_level)

    if args.mode == "serve":
        import uvicorn

        uvicorn.run(
            "transformer_guide.api:create_app",
            factory=True,
            host=config.host,
            port=config.port,
            log_level=config.log_level.lower(),
        )
        return

    print_header("Transformer Guide - Educational Transformer Course Demo")
    print(f"Mode: {args.mode}")

    storage = MemoryStorage()

    if args.mode in ("quick", "attention"):
        run_attention_demo(config, args)
    if args.mode in ("quick", "scroll"):
        run_scroll_demo(storage)
    if args.mode in ("quick", "content"):
        run_content_demo(storage)
    if args.mode == "interactive":
        run_interactive(config, args)

    print("\nDone!")


if __name__ == "__main__":
    main()
