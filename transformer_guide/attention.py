"""
Synthetic Multi-Head Attention Weights

This module generates the attention weights shown in the attention playground.
No model is run: each head is given a hand-crafted "attention pattern" that
mimics a behaviour commonly observed in trained transformers, and the scores
are normalized so that every row is a valid probability distribution.

In a real transformer the weights come from:
    Attention(Q, K, V) = softmax(Q @ K^T / sqrt(d_k)) @ V

Here we skip Q and K entirely and write down the scores directly. What the
playground teaches is the SHAPE of attention: an N x N matrix per head, where
row i is "how much token i attends to every token j", and each row sums to 1.

Head patterns (the mapping from head index to pattern is fixed):
    Head 0  - "local":             exp(-|i-j| / temperature)
    Head 1  - "self":              1 if i == j else 0.1 / (|i-j| + 1)
    Head 2  - "structured_random": U(0,1) * exp(-|i-j| / 3)
    Head 3+ - "random":            U(0,1)

Patterns "local" and "self" are deterministic. The two random patterns draw
from a numpy Generator that callers can seed for reproducible output.

Reference: "Attention Is All You Need" (Vaswani et al., 2017) Section 3.2
           https://arxiv.org/abs/1706.03762

Classes:
    AttentionResult: Tokens plus per-head weight matrices

Functions:
    generate_attention_weights: Tokenize a sentence and synthesize weights
    pattern_for_head: Which pattern a head index uses
    pattern_scores: Unnormalized scores for one pattern
    normalize_rows: Turn non-negative scores into row-stochastic weights
    format_attention_matrix: Render one head as a text table
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np

from transformer_guide.tokenizer import Tokenizer

logger = logging.getLogger(__name__)

# Pattern names, in head order
LOCAL_PATTERN = "local"
SELF_PATTERN = "self"
STRUCTURED_RANDOM_PATTERN = "structured_random"
RANDOM_PATTERN = "random"

# Heads 0, 1, 2 use these; every later head falls back to RANDOM_PATTERN
HEAD_PATTERNS = (LOCAL_PATTERN, SELF_PATTERN, STRUCTURED_RANDOM_PATTERN)

# Off-diagonal weight of the "self" pattern before distance decay
SELF_PATTERN_OFF_DIAGONAL = 0.1

# Fixed distance scale of the "structured_random" pattern
STRUCTURED_RANDOM_DECAY = 3.0


@dataclass
class AttentionResult:
    """
    Output of the attention generator.

    Attributes:
        tokens: Ordered tokens; token i is row i and column i of each matrix
        weights: Array of shape (num_heads, num_tokens, num_tokens).
                 weights[h, i, j] is how much token i attends to token j
                 in head h. Every row sums to 1.
        temperature: Temperature used for the "local" pattern
        patterns: Pattern name used for each head
    """

    tokens: List[str]
    weights: np.ndarray
    temperature: float
    patterns: List[str] = field(default_factory=list)

    @property
    def num_heads(self) -> int:
        return int(self.weights.shape[0])

    @property
    def num_tokens(self) -> int:
        return len(self.tokens)

    def head(self, head_index: int) -> np.ndarray:
        """
        Get the weight matrix of a single head.

        Args:
            head_index: Index of the head

        Returns:
            Array of shape (num_tokens, num_tokens)
        """
        if head_index < 0 or head_index >= self.num_heads:
            raise IndexError(
                f"Head index {head_index} out of range [0, {self.num_heads})"
            )
        return self.weights[head_index]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to plain Python types (for JSON responses)."""
        return {
            "tokens": list(self.tokens),
            "weights": self.weights.tolist(),
            "temperature": self.temperature,
            "patterns": list(self.patterns),
        }


def pattern_for_head(head_index: int) -> str:
    """
    Return the attention pattern used by a head.

    Args:
        head_index: Zero-based head index

    Returns:
        One of the *_PATTERN names. Heads 0, 1 and 2 map to "local", "self"
        and "structured_random"; every head from 3 onwards uses "random".
    """
    if head_index < 0:
        raise ValueError(f"head_index must be non-negative, got {head_index}")
    if head_index < len(HEAD_PATTERNS):
        return HEAD_PATTERNS[head_index]
    return RANDOM_PATTERN


def _distance_matrix(sequence_length: int) -> np.ndarray:
    """Matrix of |i - j| for all token positions i, j."""
    positions = np.arange(sequence_length)
    return np.abs(positions[:, np.newaxis] - positions[np.newaxis, :]).astype(
        np.float64
    )


def pattern_scores(
    pattern: str,
    sequence_length: int,
    temperature: float,
    rng: Optional[np.random.Generator] = None,
) -> np.ndarray:
    """
    Compute the unnormalized scores of one attention pattern.

    Every pattern is a function of the distance |i - j| between the attending
    token i and the attended token j, optionally multiplied by noise:

        local:             exp(-|i-j| / temperature)
                           Nearby tokens dominate. Low temperature makes the
                           focus sharper, high temperature spreads it out.
        self:              1 on the diagonal, 0.1 / (|i-j| + 1) elsewhere
                           Each token mostly attends to itself.
        structured_random: U(0,1) * exp(-|i-j| / 3)
                           Noisy, but still biased towards neighbours.
        random:            U(0,1)
                           No structure at all.

    Args:
        pattern: Pattern name (see module docstring)
        sequence_length: Number of tokens N
        temperature: Positive temperature for the "local" pattern
        rng: Random generator for the random patterns

    Returns:
        Non-negative scores of shape (N, N)

    Raises:
        ValueError: If temperature is not a positive finite number, or the
                    pattern is unknown
    """
    _validate_temperature(temperature)
    distances = _distance_matrix(sequence_length)

    if pattern == LOCAL_PATTERN:
        return np.exp(-distances / temperature)

    if pattern == SELF_PATTERN:
        return np.where(
            distances == 0, 1.0, SELF_PATTERN_OFF_DIAGONAL / (distances + 1.0)
        )

    if rng is None:
        rng = np.random.default_rng()

    if pattern == STRUCTURED_RANDOM_PATTERN:
        noise = rng.random((sequence_length, sequence_length))
        return noise * np.exp(-distances / STRUCTURED_RANDOM_DECAY)

    if pattern == RANDOM_PATTERN:
        return rng.random((sequence_length, sequence_length))

    raise ValueError(f"Unknown attention pattern: {pattern!r}")


def normalize_rows(scores: np.ndarray) -> np.ndarray:
    """
    Normalize non-negative scores so every row sums to 1.

    Mathematical Formula:
        weights[i, j] = scores[i, j] / sum_k(scores[i, k])

    Unlike softmax we do not exponentiate: the patterns already produce
    non-negative scores, so dividing by the row sum is enough.

    A row whose scores are all zero has no meaningful distribution; it falls
    back to uniform attention 1/N instead of dividing by zero.

    Args:
        scores: Non-negative array of shape (..., N). Normalized along the
                last axis.

    Returns:
        Array of the same shape whose rows sum to 1, values in [0, 1].
    """
    row_sums = np.sum(scores, axis=-1, keepdims=True)
    sequence_length = scores.shape[-1]

    # Step 1: Divide where the row sum is positive, leave zeros elsewhere
    normalized = np.divide(
        scores,
        row_sums,
        out=np.zeros_like(scores, dtype=np.float64),
        where=row_sums > 0,
    )

    # Step 2: Degenerate rows become uniform
    zero_rows = np.broadcast_to(row_sums <= 0, scores.shape)
    if sequence_length > 0 and np.any(zero_rows):
        normalized = np.where(zero_rows, 1.0 / sequence_length, normalized)

    return normalized


def _validate_temperature(temperature: float) -> None:
    if isinstance(temperature, bool) or not isinstance(
        temperature, (int, float, np.number)
    ):
        raise ValueError(f"temperature must be a number, got {temperature!r}")
    if not math.isfinite(temperature) or temperature <= 0:
        raise ValueError(f"temperature must be positive and finite, got {temperature}")


def _validate_arguments(head_count: int, temperature: float) -> None:
    if isinstance(head_count, bool) or not isinstance(head_count, (int, np.integer)):
        raise ValueError(f"head_count must be an integer, got {head_count!r}")
    if head_count < 1:
        raise ValueError(f"head_count must be at least 1, got {head_count}")

    _validate_temperature(temperature)


def generate_attention_weights(
    sentence: str,
    head_count: int,
    temperature: float,
    split_punctuation: bool = True,
    rng: Optional[np.random.Generator] = None,
) -> AttentionResult:
    """
    Tokenize a sentence and synthesize per-head attention weights.

    Process:
        1. Validate head_count (>= 1) and temperature (> 0)
        2. Tokenize the sentence
        3. For each head, compute the scores of its pattern
        4. Normalize every row into a probability distribution

    Args:
        sentence: Raw input text
        head_count: Number of attention heads (>= 1)
        temperature: Temperature of the "local" pattern (> 0)
        split_punctuation: Separate ". , ! ? ; :" into their own tokens
        rng: Random generator for the random patterns. Pass a seeded
             np.random.default_rng(seed) for reproducible output.

    Returns:
        AttentionResult with weights of shape (head_count, N, N). For an
        empty or whitespace-only sentence N is 0: tokens is [] and every
        head's matrix is empty.

    Raises:
        ValueError: If head_count < 1 or temperature <= 0

    Example:
        >>> result = generate_attention_weights("The cat sat.", 4, 1.0)
        >>> result.tokens
        ['The', 'cat', 'sat', '.']
        >>> result.weights.shape
        (4, 4, 4)
    """
    _validate_arguments(head_count, temperature)
    temperature = float(temperature)

    tokens = Tokenizer(split_punctuation=split_punctuation).tokenize(sentence)
    patterns = [pattern_for_head(h) for h in range(head_count)]
    sequence_length = len(tokens)

    if sequence_length == 0:
        return AttentionResult(
            tokens=[],
            weights=np.zeros((head_count, 0, 0), dtype=np.float64),
            temperature=temperature,
            patterns=patterns,
        )

    if rng is None:
        rng = np.random.default_rng()

    weights = np.empty((head_count, sequence_length, sequence_length), dtype=np.float64)
    for head_index, pattern in enumerate(patterns):
        scores = pattern_scores(pattern, sequence_length, temperature, rng)
        weights[head_index] = normalize_rows(scores)

    logger.debug(
        "Generated attention weights: %d heads, %d tokens, temperature=%.3f",
        head_count,
        sequence_length,
        temperature,
    )

    return AttentionResult(
        tokens=tokens, weights=weights, temperature=temperature, patterns=patterns
    )


def format_attention_matrix(
    tokens: List[str], matrix: np.ndarray, precision: int = 2
) -> str:
    """
    Render one head's weights as a text table.

    Rows are the attending tokens, columns the attended tokens. This is the
    console counterpart of the playground heatmap.

    Args:
        tokens: Token labels for rows and columns
        matrix: Weights of shape (N, N)
        precision: Decimal places per weight

    Returns:
        Multi-line string. "(no tokens)" when tokens is empty.
    """
    if not tokens:
        return "(no tokens)"

    if matrix.shape != (len(tokens), len(tokens)):
        raise ValueError(
            f"Matrix shape {matrix.shape} does not match {len(tokens)} tokens"
        )

    cell_width = max(precision + 3, max(len(token) for token in tokens))
    label_width = max(len(token) for token in tokens)

    header = " " * label_width + "  " + " ".join(
        token.rjust(cell_width) for token in tokens
    )
    lines = [header]
    for token, row in zip(tokens, matrix):
        cells = " ".join(f"{weight:.{precision}f}".rjust(cell_width) for weight in row)
        lines.append(f"{token.ljust(label_width)}  {cells}")

    return "\n".join(lines)


# =============================================================================
# EDUCATIONAL DEMO
# Run with: python -m transformer_guide.attention
# =============================================================================
if __name__ == "__main__":
    print("=" * 70)
    print("ATTENTION PLAYGROUND DEMO")
    print("=" * 70)
    print()
    print("Each attention head produces an N x N matrix of weights. Row i says")
    print("how much token i 'looks at' every other token, and sums to 1.")
    print()
    print("Dependencies:")
    print("  - transformer_guide.tokenizer (splits the sentence into tokens)")
    print()

    sentence = "The cat sat on the mat."
    result = generate_attention_weights(
        sentence, head_count=4, temperature=1.0, rng=np.random.default_rng(42)
    )

    print(f"Sentence: '{sentence}'")
    print(f"Tokens:   {result.tokens}")
    print(f"Weights:  shape {result.weights.shape} (heads, tokens, tokens)")
    print()

    descriptions = {
        LOCAL_PATTERN: "neighbours matter most",
        SELF_PATTERN: "each token attends to itself",
        STRUCTURED_RANDOM_PATTERN: "noisy, biased towards neighbours",
        RANDOM_PATTERN: "no structure",
    }

    for head_index, pattern in enumerate(result.patterns):
        print("-" * 70)
        print(f"HEAD {head_index} - '{pattern}' pattern ({descriptions[pattern]})")
        print("-" * 70)
        print(format_attention_matrix(result.tokens, result.head(head_index)))
        print()

    print("-" * 70)
    print("TEMPERATURE - sharp vs. spread-out local attention")
    print("-" * 70)
    for temperature in (0.1, 2.0):
        local = generate_attention_weights(sentence, 1, temperature).head(0)
        print(f"temperature={temperature}: row 'cat' = "
              + "  ".join(f"{w:.3f}" for w in local[1]))
    print()

    print("=" * 70)
    print("SUMMARY")
    print("=" * 70)
    print("- Attention weights form one N x N matrix per head")
    print("- Every row is a probability distribution (sums to 1)")
    print("- Different heads focus on different relationships")
    print()
    print("Real models LEARN these patterns from data; here they are written")
    print("down by hand so the structure is easy to see.")
