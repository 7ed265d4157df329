# src/lens/ui.py

from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .core.metadata import EntityMetadata
from .core.query.info import JoinType
from .core.query.plan import QueryPlan

# --- Global Console ---
console = Console()


def display_entity_metadata(meta: EntityMetadata, out: Optional[Console] = None) -> None:
    """Prints the fields and relationships known for an entity."""
    out = out or console

    structure_table = Table(
        box=None, padding=(0, 1), show_header=False, show_edge=False
    )
    structure_table.add_column("Name", style="cyan", no_wrap=True, width=24)
    structure_table.add_column("Kind", style="green", width=16)
    structure_table.add_column("Details", style="white")

    for name in sorted(meta.field_names):
        details = "[yellow]PK[/yellow]" if name in meta.primary_key else ""
        structure_table.add_row(name, "field", details)

    for name, target in sorted(meta.associations.items()):
        structure_table.add_row(name, "relation", f"[blue]-> {target.__name__}[/blue]")

    out.print(f"[bold]{meta.name}[/bold] [dim](alias {meta.alias})[/dim]")
    out.print(structure_table)
    out.print()


def display_query_plan(plan: QueryPlan, out: Optional[Console] = None) -> None:
    """Prints the joins, predicates, order and pagination of a plan."""
    out = out or console

    joins = Table(box=None, show_header=True, padding=(0, 1))
    joins.add_column("Join", style="cyan")
    joins.add_column("Alias", style="magenta")
    joins.add_column("Type", style="green")
    joins.add_column("Fields", style="white")
    for join in plan.joins:
        kind = "LEFT" if join.join_type == JoinType.LEFT else "INNER"
        joins.add_row(join.join, join.alias, kind, ", ".join(join.fields) or "*")

    lines = [
        f"[bold]FROM[/bold] {plan.metadata.name} {plan.root_alias}",
        f"[bold]SELECT[/bold] {', '.join(plan.fields) or '*'}",
        f"[bold]WHERE[/bold] {len(plan.predicates)} predicate(s)",
        f"[bold]ORDER BY[/bold] "
        + (", ".join(f"{c.path} {c.direction.value}" for c in plan.order_by) or "-"),
        f"[bold]LIMIT[/bold] {plan.limit if plan.limit is not None else '-'}"
        f"  [bold]OFFSET[/bold] {plan.offset if plan.offset is not None else '-'}",
    ]
    if plan.unresolved_sort:
        lines.append(f"[yellow]unresolved sort[/yellow]: {', '.join(plan.unresolved_sort)}")

    out.print(Panel("\n".join(lines), title=f"[bold green]{plan.root_alias}[/bold green]", border_style="blue"))
    if plan.joins:
        out.print(joins)
