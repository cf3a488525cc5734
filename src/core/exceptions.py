"""Domain errors raised by the workflows.

They subclass ``ValueError`` so callers catching ``ValueError`` for
validation failures handle them the same way.
"""


class InsufficientStockError(ValueError):
    """A decrement would drive an item's on-hand quantity below zero."""

    def __init__(self, product_name, available, requested):
        self.product_name = product_name
        self.available = available
        self.requested = requested
        self.shortfall = requested - available
        super().__init__(
            f"Stock insuffisant pour '{product_name}'. "
            f"Disponible: {available}, demande: {requested} "
            f"(manque: {self.shortfall})."
        )


class InvalidTransitionError(ValueError):
    """A status change not allowed from the entity's current status."""

    def __init__(self, entity, current, target):
        self.entity = entity
        self.current = current
        self.target = target
        super().__init__(
            f"Transition impossible pour {entity}: {current} -> {target}."
        )


class ReturnExceedsDueError(ValueError):
    """A sales return worth more than the invoice's unpaid balance."""

    def __init__(self, return_amount, due_amount):
        self.return_amount = return_amount
        self.due_amount = due_amount
        super().__init__(
            f"La valeur du retour ({return_amount}) depasse le montant du "
            f"de la facture ({due_amount})."
        )
