"""Command line interface for browsing clades and training clade models."""

import asyncio
import uuid
from pathlib import Path

import rich_click as click
import structlog

from cladeview.auth import StaticTokenProvider
from cladeview.cladeview import CladeView
from cladeview.exceptions import Error
from cladeview.training import score_badges
from cladeview.util.config import Config
from cladeview.util.timing import time_function

logger = structlog.get_logger()

list_options = [
    click.option("--page", type=int, default=None, help="Page of results to show"),
    click.option("--page-size", type=int, default=None, help="Number of results per page. Default: 10"),
    click.option("--query", default=None, help="Only show records matching this filter term"),
]


def _with_list_options(func):
    for option in reversed(list_options):
        func = option(func)
    return func


def _check(state):
    """Raise a ClickException for a store snapshot that holds an error."""
    if state.error is not None:
        raise click.ClickException(f"Request failed: {state.error}")
    return state


def _clade_line(cv: CladeView, clade) -> str:
    flags = []
    if cv.is_annotatable(clade):
        flags.append("annotatable")
    if cv.is_trainable(clade):
        flags.append("trainable")
    model = clade.model.ml_model if clade.model else "-"
    branch_type = clade.branch_type.name.lower() if clade.branch_type else "?"
    return f"{clade.uuid}  {branch_type:<6}  children={len(clade.child):<4}  model={model:<8}  {' '.join(flags)}"


@click.group()
@click.option("--api-url", default=None, help="Research API root URL. Default: $CLADEVIEW_API_URL or http://localhost:8000")
@click.option("--token", envvar="CLADEVIEW_TOKEN", default=None, help="API credential. Default: $CLADEVIEW_TOKEN")
@click.option(
    "--min-clade-length",
    type=int,
    default=None,
    help="Child count that separates small clades from large ones. Default: 10",
)
@click.pass_context
def main(ctx: click.Context, api_url: str | None, token: str | None, min_clade_length: int | None):
    """Browse phylogenetic projects, trees and clades, and train clade models."""
    config = Config()
    if api_url:
        config.api_url = api_url.rstrip("/")
    if min_clade_length is not None:
        config.min_clade_length = min_clade_length
    ctx.obj = CladeView(config=config, token_provider=StaticTokenProvider(token))


@main.command()
@_with_list_options
@click.pass_obj
def projects(cv: CladeView, page: int | None, page_size: int | None, query: str | None):
    """List projects."""
    state = _check(asyncio.run(cv.load_projects(page=page, page_size=page_size, query=query)))
    for project in state.items:
        click.echo(f"{project.uuid}  {project.title}")
    click.echo(f"{len(state.items)} of {state.count} projects")


@main.command()
@click.argument("project", type=click.UUID)
@_with_list_options
@click.pass_obj
def trees(cv: CladeView, project: uuid.UUID, page: int | None, page_size: int | None, query: str | None):
    """List the trees of PROJECT."""
    state = _check(asyncio.run(cv.load_trees(project, page=page, page_size=page_size, query=query)))
    for tree in state.items:
        click.echo(f"{tree.uuid}  {tree.title}  feature_set={tree.feature_set or '-'}")
    click.echo(f"{len(state.items)} of {state.count} trees")


@main.command()
@click.argument("tree", type=click.UUID)
@_with_list_options
@click.pass_obj
def clades(cv: CladeView, tree: uuid.UUID, page: int | None, page_size: int | None, query: str | None):
    """List the clades of TREE."""
    state = _check(asyncio.run(cv.load_clades(tree, page=page, page_size=page_size, query=query)))
    for clade in state.items:
        click.echo(_clade_line(cv, clade))
    click.echo(f"{len(state.items)} of {state.count} clades")


@main.command()
@click.argument("tree", type=click.UUID)
@_with_list_options
@click.pass_obj
def models(cv: CladeView, tree: uuid.UUID, page: int | None, page_size: int | None, query: str | None):
    """Show the model test scores of TREE's clades."""
    _check(asyncio.run(cv.load_clades(tree, page=page, page_size=page_size, query=query)))
    click.echo(cv.model_summary())


async def _train(cv: CladeView, project: uuid.UUID, tree: uuid.UUID, clade_id: uuid.UUID, feature_set):
    _check(await cv.load_tree(project, tree))
    _check(await cv.load_clade(tree, clade_id))
    clade = cv.clades.detail.record
    return await cv.train(clade, feature_set)


@main.command()
@click.argument("project", type=click.UUID)
@click.argument("tree", type=click.UUID)
@click.argument("clade", type=click.UUID)
@click.option(
    "--feature-set",
    type=click.UUID,
    default=None,
    help="Feature set to train on. Default: the feature set of TREE",
)
@click.pass_obj
@time_function
def train(cv: CladeView, project: uuid.UUID, tree: uuid.UUID, clade: uuid.UUID, feature_set: uuid.UUID | None):
    """Train a classifier for CLADE of TREE in PROJECT."""
    logger.info("Starting clade training", tree=str(tree), clade=str(clade))
    try:
        model = asyncio.run(_train(cv, project, tree, clade, feature_set))
    except Error as err:
        raise click.ClickException(str(err)) from err

    badges = ", ".join(f"{score} ({severity})" for score, severity in score_badges(model))
    click.echo(f"Model: {model.ml_model}")
    click.echo(f"Scores: {badges or '-'}")


@main.command(name="export-fasta")
@click.argument("tree", type=click.UUID)
@click.argument("output", type=click.Path(dir_okay=False, path_type=Path))
@_with_list_options
@click.pass_obj
def export_fasta(
    cv: CladeView, tree: uuid.UUID, output: Path, page: int | None, page_size: int | None, query: str | None
):
    """Write the sequences of TREE's clades to OUTPUT in FASTA format."""
    _check(asyncio.run(cv.load_clades(tree, page=page, page_size=page_size, query=query)))
    output_file = cv.export_fasta(output)
    click.echo(f"Sequences saved to {output_file}")


if __name__ == "__main__":
    main()
