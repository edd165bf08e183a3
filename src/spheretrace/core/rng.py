"""Explicit random number streams for Monte Carlo sampling.

Every sampling routine in the tracer takes a generator state and returns the
advanced state alongside its result, instead of drawing from a hidden global
generator. This keeps each pixel sample on its own independent stream, so a
render is reproducible for a fixed seed no matter how Taichi schedules the
parallel pixel loop.

The generator is PCG32 (RXS-M-XS variant): a 32-bit linear congruential step
followed by an output permutation.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.spheretrace.core.rng import make_stream, next_float
    >>> @ti.kernel
    ... def draw() -> ti.f32:
    ...     state = make_stream(ti.u32(7), ti.u32(0), ti.u32(0))
    ...     value, state = next_float(state)
    ...     return value
"""

import taichi as ti

# LCG step constants (multiplier is 1 mod 4 and the increment is odd, so the
# state sequence has full period 2^32)
PCG_MULTIPLIER = 747796405
PCG_INCREMENT = 1013904223

# Output permutation multiplier
PCG_OUTPUT_MULTIPLIER = 277803737

# 2^-24: maps the top 24 bits of a word onto [0, 1)
_INV_2_POW_24 = 1.0 / 16777216.0


@ti.func
def _lcg_step(state: ti.u32) -> ti.u32:
    return state * ti.u32(PCG_MULTIPLIER) + ti.u32(PCG_INCREMENT)


@ti.func
def _permute(state: ti.u32) -> ti.u32:
    word = ((state >> ((state >> ti.u32(28)) + ti.u32(4))) ^ state) * ti.u32(
        PCG_OUTPUT_MULTIPLIER
    )
    return (word >> ti.u32(22)) ^ word


@ti.func
def pcg_hash(value: ti.u32) -> ti.u32:
    """Hash a 32-bit value with one PCG step.

    Used to turn structured inputs (seed, pixel index, sample index) into
    well-mixed starting states.

    Args:
        value: The input value.

    Returns:
        The hashed 32-bit value.
    """
    return _permute(_lcg_step(value))


@ti.func
def make_stream(seed: ti.u32, index: ti.u32, sample: ti.u32) -> ti.u32:
    """Derive an independent generator state for one sample.

    Args:
        seed: The render seed chosen by the caller.
        index: Usually the linear pixel index.
        sample: The sample number within the pixel.

    Returns:
        A generator state for this (seed, index, sample) triple.
    """
    state = pcg_hash(seed)
    state = pcg_hash(state ^ index)
    return pcg_hash(state ^ sample)


@ti.func
def next_uint(state: ti.u32):
    """Advance the generator and return a 32-bit output word.

    Args:
        state: The current generator state.

    Returns:
        A tuple of (word, new_state).
    """
    new_state = _lcg_step(state)
    return _permute(new_state), new_state


@ti.func
def next_float(state: ti.u32):
    """Draw a uniform float in [0, 1).

    Args:
        state: The current generator state.

    Returns:
        A tuple of (value, new_state) with 0 <= value < 1.
    """
    word, new_state = next_uint(state)
    value = ti.cast(word >> ti.u32(8), ti.f32) * _INV_2_POW_24
    return value, new_state
