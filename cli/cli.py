import logging

import click


@click.group()
@click.version_option(package_name='spynl.queryfilter')
@click.option('-v', '--verbose', is_flag=True, help='Log every stripped operator.')
def cli(verbose):
    """Entry point for all commands."""
    if verbose:
        logging.basicConfig(format='%(name)s: %(message)s')
        logging.getLogger('spynl_queryfilter').setLevel(logging.DEBUG)
