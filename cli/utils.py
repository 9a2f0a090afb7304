import click


def fail(msg):
    click.get_current_context().fail(msg)


def describe(exception):
    """Message of a QueryFilterException including what the developer needs."""
    if exception.developer_message:
        return '{} {}'.format(exception.message, exception.developer_message)
    return exception.message
