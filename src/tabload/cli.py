"""CLI for tabload."""

import logging
import sys
from pathlib import Path
from typing import Callable, Dict, List, Optional

import typer
from rich.console import Console
from rich.table import Table

from tabload.config import ConnectionManager
from tabload.errors import LoaderError, PartialLoadError
from tabload.loaders import DataLoader, IfExists, LoadConfig, LoadResult, LoaderRegistry
from tabload.loaders.utils import TableNameUtils
from tabload.metrics import start_metrics_server
from tabload.orchestrator import DEFAULT_TABLES, LoadOrchestrator
from tabload.schema import TableDefinitionGenerator, TypeInferenceEngine
from tabload.sources import CsvRowSource

DEFAULT_DATABASE = './out/database.sqlite'

app = typer.Typer(name='tabload', help='tabload - load delimited text files into SQL tables')
console = Console()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )


def _parse_tables(tables: Optional[List[str]]) -> Dict[str, str]:
    """Turn repeated NAME=FILE options into a table mapping"""
    if not tables:
        return dict(DEFAULT_TABLES)

    mapping: Dict[str, str] = {}
    for entry in tables:
        name, sep, file_name = entry.partition('=')
        if not sep or not name or not file_name:
            raise typer.BadParameter(f'Expected NAME=FILE, got {entry!r}', param_hint='--table')
        mapping[name] = file_name
    return mapping


def _loader_factory(connection: Optional[str], database: Optional[str]) -> Callable[[], DataLoader]:
    if connection:
        return ConnectionManager().loader_factory(connection)

    loader_class = LoaderRegistry.get_loader_class('sqlite')
    path = database or DEFAULT_DATABASE
    return lambda: loader_class({'database': path})


def _results_table(results: List[LoadResult]) -> Table:
    table = Table(title='Load Results')
    table.add_column('Table', style='cyan')
    table.add_column('Status')
    table.add_column('Rows read', justify='right')
    table.add_column('Rows loaded', justify='right')
    table.add_column('Batches', justify='right')
    table.add_column('Duration', justify='right', style='dim')
    table.add_column('Error', style='red')

    for result in results:
        status = '[green]✓ Loaded[/green]' if result.success else '[red]✗ Failed[/red]'
        table.add_row(
            result.table_name,
            status,
            str(result.rows_observed),
            str(result.rows_loaded),
            str(result.batches_submitted),
            f'{result.duration:.2f}s',
            str(result.error) if result.error else '',
        )
    return table


@app.command()
def load(
    directory: Path = typer.Argument(..., help='Directory holding the source files'),
    table: Optional[List[str]] = typer.Option(
        None, '--table', '-t', help='NAME=FILE pair, repeatable (default: customers and organizations)'
    ),
    connection: Optional[str] = typer.Option(None, '--connection', '-c', help='Named connection to load into'),
    database: Optional[str] = typer.Option(
        None, '--database', help=f'SQLite database path when no connection is given (default: {DEFAULT_DATABASE})'
    ),
    batch_size: int = typer.Option(100, '--batch-size', help='Rows per insert batch'),
    if_exists: IfExists = typer.Option(IfExists.FAIL, '--if-exists', help='What to do when a table already exists'),
    table_workers: int = typer.Option(1, '--table-workers', help='Tables loaded concurrently'),
    metrics_port: Optional[int] = typer.Option(None, '--metrics-port', help='Expose Prometheus metrics on this port'),
    verbose: bool = typer.Option(False, '--verbose', '-v', help='Enable debug logging'),
):
    """Load every NAME=FILE pair into its own table."""
    _configure_logging(verbose)

    if metrics_port is not None:
        start_metrics_server(port=metrics_port)
        console.print(f'[dim]Metrics available at http://localhost:{metrics_port}/metrics[/dim]')

    try:
        mapping = _parse_tables(table)
        config = LoadConfig(batch_size=batch_size, if_exists=if_exists, table_workers=table_workers)
        orchestrator = LoadOrchestrator(_loader_factory(connection, database), config)

        console.print(f'[bold]Loading {len(mapping)} tables from {directory}...[/bold]\n')
        results = orchestrator.run_directory(directory, mapping)
    except PartialLoadError as e:
        console.print(_results_table(e.results))
        console.print(f'\n[bold red]Error:[/bold red] {e}')
        sys.exit(1)
    except LoaderError as e:
        console.print(f'[bold red]Error:[/bold red] {e}')
        sys.exit(1)

    console.print(_results_table(results))
    total = sum(r.rows_loaded for r in results)
    console.print(f'\n[bold green]✓ Loaded {total} rows into {len(results)} tables[/bold green]')


@app.command()
def infer(
    file: Path = typer.Argument(..., help='Delimited text file with a header row'),
    table: Optional[str] = typer.Option(None, '--table', '-t', help='Table name (default: derived from the file name)'),
    loader: str = typer.Option('sqlite', '--loader', '-l', help='Loader whose CREATE TABLE dialect to print'),
    connection: Optional[str] = typer.Option(None, '--connection', '-c', help='Named connection to take settings from'),
    delimiter: str = typer.Option(',', '--delimiter', help='Field delimiter'),
):
    """Show the inferred schema and the CREATE TABLE statement for a file."""
    table_name = table or TableNameUtils.sanitize_table_name(file.name)

    try:
        with CsvRowSource(file, delimiter=delimiter).open() as rows:
            schema = TypeInferenceEngine().infer(rows)

        if connection:
            target = ConnectionManager().loader_factory(connection)()
        elif loader == 'sqlite':
            # Only renders DDL, never connects
            target = LoaderRegistry.create_loader('sqlite', {'database': ':memory:'})
        else:
            target = ConnectionManager().loader_factory(loader)()
        statement = TableDefinitionGenerator(target).render(table_name, schema)
    except LoaderError as e:
        console.print(f'[bold red]Error:[/bold red] {e}')
        sys.exit(1)

    result_table = Table(title=f'Inferred schema: {table_name}')
    result_table.add_column('Column', style='cyan')
    result_table.add_column('Type', style='green')
    result_table.add_column('Arrow type', style='dim')
    for column in schema:
        result_table.add_row(column.name, column.type.value, str(column.type.to_arrow()))

    console.print(result_table)
    console.print(f'\n[bold]{target.loader_type}:[/bold] {statement}')


@app.command()
def loaders():
    """List available loaders."""
    for name in LoaderRegistry.get_available_loaders():
        console.print(f'  [cyan]{name}[/cyan]')


def main():
    app()


if __name__ == '__main__':
    main()
