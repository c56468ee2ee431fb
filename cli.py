# cli.py - interactive terminal client for the catalog API
import os
import sys
from datetime import datetime
from typing import Any, Dict, List, Optional

from prompt_toolkit import prompt
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.styles import Style as PromptStyle
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.prompt import Confirm, IntPrompt, Prompt
from rich.table import Table

from catalog.config import CATEGORIES
from sdk.catalog_client import CatalogClient

console = Console()
c = CatalogClient(base_url=os.getenv("CATALOG_API_URL", "http://127.0.0.1:3000"))

status_message = "Ready"
product_cache: List[Dict[str, Any]] = []

custom_style = PromptStyle.from_dict({
    'completion-menu.completion': 'bg:#008888 #ffffff',
    'completion-menu.completion.current': 'bg:#00aaaa #000000',
    'scrollbar.background': 'bg:#88aaaa',
    'scrollbar.button': 'bg:#222222',
})

category_completer = WordCompleter(CATEGORIES, ignore_case=True)


# ---------------------------
# Display helpers
# ---------------------------
def show_products(products: List[Dict[str, Any]], pagination: Optional[Dict[str, Any]] = None):
    if not products:
        console.print("[italic yellow]No products found[/italic yellow]")
        return

    table = Table(
        title="📦 Products Catalog",
        box=box.ROUNDED,
        header_style="bold cyan",
        title_style="bold magenta",
        show_lines=True
    )
    table.add_column("ID", style="dim", width=24)
    table.add_column("Name", style="bold", width=20)
    table.add_column("Price", justify="right", width=12)
    table.add_column("Qty", justify="right", width=6)
    table.add_column("Category", width=12)
    table.add_column("Tags", width=20)

    for p in products:
        qty = str(p.get("quantity", 0))
        if not p.get("inStock", False):
            qty = f"[red]{qty}[/red]"
        elif p.get("quantity", 0) < 5:
            qty = f"[yellow]{qty}[/yellow]"
        table.add_row(
            p.get("id", "N/A"),
            p.get("name", "N/A"),
            p.get("formattedPrice", "N/A"),
            qty,
            p.get("category", "N/A"),
            ", ".join(p.get("tags", [])),
        )
    console.print(table)

    if pagination:
        console.print(
            f"[dim]Page {pagination['page']} of {pagination['totalPages']} "
            f"({pagination['totalItems']} products)[/dim]"
        )


def show_product(p: Dict[str, Any]):
    lines = [
        f"[bold]Price:[/bold] {p.get('formattedPrice')}",
        f"[bold]Category:[/bold] {p.get('category')}",
        f"[bold]Quantity:[/bold] {p.get('quantity')} ({'in stock' if p.get('inStock') else 'out of stock'})",
        f"[bold]Tags:[/bold] {', '.join(p.get('tags', [])) or '-'}",
        f"[bold]Image:[/bold] {p.get('imageUrl')}",
        "",
        p.get("description") or "[dim]No description[/dim]",
    ]
    console.print(Panel("\n".join(lines), title=f"ℹ️ {p.get('name')}", subtitle=p.get("id"), border_style="cyan"))


def show_status(message: str, is_success: bool = True):
    style = "green" if is_success else "red"
    return Panel.fit(f"[{style}]{message}[/{style}]", title="Status")


def _error_text(e: Exception) -> str:
    # surface the API's error body when there is one
    response = getattr(e, "response", None)
    if response is not None:
        try:
            body = response.json()
        except ValueError:
            return f"HTTP {response.status_code}"
        if "errors" in body:
            return "; ".join(f"{err['field']}: {err['message']}" for err in body["errors"])
        return body.get("error", f"HTTP {response.status_code}")
    return str(e)


# ---------------------------
# API wrapper with exception handling
# ---------------------------
def try_api(fn, *args, success_msg: Optional[str] = None, **kwargs):
    """
    Calls fn(*args, **kwargs) behind a spinner and returns its result.
    Errors are shown as a status panel and None is returned.
    """
    global status_message
    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            transient=True,
        ) as progress:
            progress.add_task(description="Processing...", total=None)
            result = fn(*args, **kwargs)

        if success_msg:
            status_message = success_msg
            console.print(show_status(success_msg, True))
        return result
    except Exception as e:
        status_message = f"Error: {_error_text(e)}"
        console.print(show_status(status_message, False))
        return None


# ---------------------------
# Input helpers with autocomplete
# ---------------------------
def get_product_completer():
    global product_cache
    if not product_cache:
        page = try_api(c.list_products, limit=100) or {}
        product_cache = page.get("products", [])
    return WordCompleter([p["id"] for p in product_cache], ignore_case=True, meta_dict={p["id"]: p["name"] for p in product_cache})


def prompt_with_autocomplete(message: str, completer=None, default: str = ""):
    return prompt(f"{message} ", completer=completer, style=custom_style, default=default)


def ask_float(message: str, default: float = 10.0) -> float:
    while True:
        raw = Prompt.ask(message, default=str(default))
        try:
            return float(raw)
        except ValueError:
            console.print("[red]Please enter a valid number.[/red]")


def ask_product_fields(current: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    current = current or {}
    return {
        "name": prompt_with_autocomplete("Name", default=current.get("name", "")),
        "price": ask_float("💰 Price", default=current.get("price", 10.0)),
        "quantity": IntPrompt.ask("📦 Quantity", default=current.get("quantity", 1)),
        "category": prompt_with_autocomplete("🏷️ Category", completer=category_completer, default=current.get("category", "Other")),
        "description": prompt_with_autocomplete("Description", default=current.get("description") or ""),
        "tags": prompt_with_autocomplete("Tags (comma separated)", default=", ".join(current.get("tags", []))),
        "imageUrl": current.get("imageUrl"),
    }


def ask_filters() -> Dict[str, Any]:
    filters = {
        "category": prompt_with_autocomplete("Category (empty for all)", completer=category_completer) or None,
        "min_price": Prompt.ask("Min price", default="") or None,
        "max_price": Prompt.ask("Max price", default="") or None,
        "sort_by": Prompt.ask("Sort by", choices=["createdAt", "name", "price", "quantity"], default="createdAt"),
        "page": IntPrompt.ask("Page", default=1),
    }
    filters["sort_order"] = "desc" if Confirm.ask("Descending order?", default=filters["sort_by"] == "createdAt") else "asc"
    if Confirm.ask("Only products in stock?", default=False):
        filters["in_stock"] = True
    return filters


# ---------------------------
# Header
# ---------------------------
def create_header():
    header = Table(show_header=False, box=box.ROUNDED)
    header.add_column("left", width=30)
    header.add_column("center", width=40)
    header.add_column("right", width=30)

    now = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    header.add_row(
        "🛍️ Catalog",
        "[bold blue]Product catalog client[/bold blue]",
        f"[dim]{now}[/dim]"
    )
    return Panel(header, style="bold blue")


# ---------------------------
# Main menu
# ---------------------------
def menu():
    global product_cache

    console.clear()
    console.print(create_header())

    while True:
        if status_message:
            console.print(show_status(status_message, not status_message.startswith("Error")))

        menu_table = Table.grid(padding=(0, 2))
        menu_table.add_column("Key", style="bold cyan", width=4)
        menu_table.add_column("Option", width=30)
        menu_table.add_column("Key", style="bold cyan", width=4)
        menu_table.add_column("Option", width=30)

        options = [
            ("1", "📦 List products", "4", "➕ Create product"),
            ("2", "🔍 Search products", "5", "✏️ Edit product"),
            ("3", "ℹ️ Get product by ID", "6", "🗑️ Delete product"),
            ("", "", "q", "👋 Quit")
        ]
        for row in options:
            menu_table.add_row(*row)
        console.print(Panel(menu_table, title="📋 Menu", border_style="yellow"))

        choice = prompt_with_autocomplete(
            "\nChoose an option",
            completer=WordCompleter([str(i) for i in range(1, 7)] + ["q", "quit", "exit"])
        ).strip()

        if choice == "1":
            page = try_api(c.list_products, **ask_filters(), success_msg="Products loaded")
            if page is not None:
                show_products(page["products"], page["pagination"])

        elif choice == "2":
            term = prompt_with_autocomplete("Enter search term")
            res = try_api(c.search_products, term, success_msg=f"Search for '{term}' completed")
            if res is not None:
                show_products(res)

        elif choice == "3":
            pid = prompt_with_autocomplete("Enter product ID", completer=get_product_completer())
            resp = try_api(c.get_product, pid, success_msg=f"Product {pid} loaded")
            if resp:
                show_product(resp)

        elif choice == "4":
            fields = ask_product_fields()
            resp = try_api(c.create_product, success_msg=f"Product '{fields['name']}' created", **fields)
            if resp:
                show_product(resp)
                product_cache = []

        elif choice == "5":
            pid = prompt_with_autocomplete("Enter product ID", completer=get_product_completer())
            current = try_api(c.get_product, pid)
            if current:
                resp = try_api(c.update_product, pid, ask_product_fields(current), success_msg=f"Product {pid} updated")
                if resp:
                    show_product(resp)
                    product_cache = []

        elif choice == "6":
            pid = prompt_with_autocomplete("Enter product ID", completer=get_product_completer())
            if Confirm.ask(f"[red]Delete product {pid}?[/red]"):
                resp = try_api(c.delete_product, pid, success_msg=f"Product {pid} deleted")
                if resp:
                    product_cache = []

        elif choice.lower() in ("q", "quit", "exit"):
            if Confirm.ask("Are you sure you want to quit?"):
                console.print(Panel.fit("[bold green]Goodbye! 👋[/bold green]", title="Goodbye"))
                sys.exit(0)

        console.print()
        console.rule(style="dim")


if __name__ == "__main__":
    try:
        menu()
    except KeyboardInterrupt:
        console.print("\n\n[bold red]Interrupted by user[/bold red]")
        sys.exit(1)
    except Exception as e:
        console.print(f"\n\n[bold red]Unexpected error: {e}[/bold red]")
        sys.exit(1)
