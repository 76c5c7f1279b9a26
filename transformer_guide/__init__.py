"""
Transformer Guide - Interactive Companion to a Transformer Course

This package provides the logic behind an educational web course on
transformer neural networks: the attention playground, the scroll-spy that
follows the reader through the course page, and a small REST API over the
course content.

Modules:
    tokenizer: Naive word-level tokenizer for the playground
    attention: Synthetic multi-head attention weights for heatmaps
    viewport: Minimal layout model (rectangles, scrolling, visibility)
    scroll_spy: Tracks which course section is currently active
    content: In-memory course content, quiz, users and progress
    config: Application settings
    logging_utils: Logger setup
    api: FastAPI application

Reference:
    "Attention Is All You Need" (Vaswani et al., 2017)
    https://arxiv.org/abs/1706.03762
"""

__version__ = "1.0.0"
__author__ = "Educational LLM Project"
