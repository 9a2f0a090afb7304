import json

import click

from cli.cli import cli
from cli.utils import describe, fail

from spynl_queryfilter import (
    MAX_DEPTH,
    OPERATORS,
    QueryFilterException,
    Sanitizer,
    parse_mask,
)


@cli.command()
@click.argument('group', required=False)
def masks(group):
    """Show the bit of every operator category."""
    groups = [group] if group else OPERATORS.groups
    for name in groups:
        try:
            group_masks = OPERATORS.masks(name)
        except QueryFilterException as e:
            fail(describe(e))
        click.echo(name.lower())
        for category, bit in group_masks._asdict().items():
            click.echo('  {:<14}{}'.format(category, bit))


@cli.command()
@click.argument('group')
@click.argument('mask')
def resolve(group, mask):
    """
    Show the operators that MASK enables for GROUP.

    MASK is an integer or an expression such as 'logical|comparison'.
    """
    try:
        tokens = Sanitizer().resolve(group, parse_mask(mask, group))
    except QueryFilterException as e:
        fail(describe(e))
    click.echo(' '.join(tokens))


@cli.command(name='filter')
@click.option(
    '-c',
    '--config',
    'permissions',
    multiple=True,
    metavar='GROUP=MASK',
    help='Enable operators for a group, can be given multiple times.',
)
@click.option('-r', '--restrict', help='Only use the permissions of this group.')
@click.option('--max-depth', type=int, default=MAX_DEPTH, show_default=True)
@click.argument('document', type=click.File('r'), default='-')
def filter_document(permissions, restrict, max_depth, document):
    """Strip the operators that are not allowed from a JSON DOCUMENT."""
    configuration = {}
    for item in permissions:
        group, sep, mask = item.partition('=')
        if not sep:
            fail('Expected GROUP=MASK, got {!r}.'.format(item))
        configuration[group.strip()] = mask

    try:
        data = json.load(document)
    except json.JSONDecodeError as e:
        fail('Invalid JSON document: {}'.format(e))

    try:
        sanitizer = Sanitizer(configuration, max_depth=max_depth)
        result = sanitizer.filter(data, restrict)
    except QueryFilterException as e:
        fail(describe(e))
    click.echo(json.dumps(result))
