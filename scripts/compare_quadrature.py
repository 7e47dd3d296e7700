#!/usr/bin/env python
"""
Compare EAP estimates across quadrature rules for a fixed response pattern.
"""

import numpy as np
import typer
from numpy.typing import NDArray
from rich.console import Console
from rich.table import Table

from psychometric_core.irt import ItemParameter, Response
from psychometric_core.irt.estimation.abilities import (
    response_log_likelihood,
)
from psychometric_core.irt.estimation.quadrature import (
    compare_quadrature_methods,
)

console = Console(force_terminal=True, legacy_windows=True)
app = typer.Typer()


@app.command()
def main(
    n_items: int = typer.Option(
        10, "-n", "--n-items", help="Number of items, b spread over [-2, 2]"
    ),
    n_correct: int = typer.Option(
        7, "-k", "--n-correct", help="Correct answers, easiest items first"
    ),
    discrimination: float = typer.Option(
        1.0, "-a", "--discrimination", help="Discrimination of every item"
    ),
) -> None:
    """Print posterior mean and SD under each quadrature rule."""
    if not 0 <= n_correct <= n_items:
        console.print("[red]n_correct must be between 0 and n_items[/red]")
        raise typer.Exit(1)

    difficulties = np.linspace(-2.0, 2.0, n_items)
    responses = [
        Response(
            correct=idx < n_correct,
            item=ItemParameter(item_id=f"item_{idx}", a=discrimination, b=b),
        )
        for idx, b in enumerate(difficulties)
    ]

    def log_likelihood(theta: NDArray[np.float64]) -> NDArray[np.float64]:
        return response_log_likelihood(theta, responses)

    summaries = compare_quadrature_methods(log_likelihood)

    table = Table(title=f"EAP with {n_correct}/{n_items} correct")
    table.add_column("Rule", style="cyan")
    table.add_column("Mean", justify="right")
    table.add_column("SD", justify="right")
    for name, summary in summaries.items():
        table.add_row(name, f"{summary.mean:.6f}", f"{summary.sd:.6f}")
    console.print(table)


if __name__ == "__main__":
    app()
