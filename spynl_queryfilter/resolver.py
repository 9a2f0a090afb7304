from spynl_queryfilter.catalog import canonical_token, group_key


class GroupResolver:
    """Answers which groups are enabled and which operators they allow."""

    def __init__(self, permissions):
        self.permissions = permissions

    def active_groups(self, restrict=None):
        """
        Return the groups that allow at least one operator, in catalog order.

        If restrict is given only that group can be returned. An empty string
        names no group at all, so nothing is returned for it.
        """
        if restrict is not None:
            restrict = group_key(restrict)

        return [
            group
            for group in self.permissions.catalog.groups
            if self.permissions.allowed_in(group)
            and (restrict is None or group == restrict)
        ]

    def allowed(self, group, token):
        """Check if the operator is allowed for the group. 'and' means '$and'."""
        allowed = self.permissions.allowed_in(group)
        return canonical_token(token) in allowed
