from itertools import product

import pytest

from fnb_erp.core.errors import InvalidStateError
from fnb_erp.models.internal_request import InternalRequestStatus
from fnb_erp.models.purchase_order import PurchaseOrderStatus
from fnb_erp.models.receiving import ReceivingStatus
from fnb_erp.models.transfer import TransferStatus
from fnb_erp.services.internal_request_service import INTERNAL_REQUEST_MACHINE
from fnb_erp.services.purchase_order_service import PURCHASE_ORDER_MACHINE
from fnb_erp.services.receiving_service import RECEIVING_MACHINE
from fnb_erp.services.transfer_service import TRANSFER_MACHINE

# machine, lifecycle order (declaration order of the enum), terminal statuses
MACHINES = {
    "purchase_order": (
        PURCHASE_ORDER_MACHINE,
        list(PurchaseOrderStatus),
        {PurchaseOrderStatus.RECEIVED, PurchaseOrderStatus.CANCELLED},
    ),
    "receiving": (
        RECEIVING_MACHINE,
        list(ReceivingStatus),
        {ReceivingStatus.QC_REJECTED, ReceivingStatus.RECEIVED, ReceivingStatus.CANCELLED},
    ),
    "internal_request": (
        INTERNAL_REQUEST_MACHINE,
        list(InternalRequestStatus),
        {InternalRequestStatus.CONFIRMED, InternalRequestStatus.CANCELLED},
    ),
    "transfer": (
        TRANSFER_MACHINE,
        list(TransferStatus),
        {TransferStatus.RECEIVED, TransferStatus.CANCELLED},
    ),
}


def _actions(machine) -> set[str]:
    return {action for _, action in machine.table} | set(machine.messages)


def _illegal_pairs():
    for name, (machine, statuses, _) in MACHINES.items():
        for status, action in product(statuses, sorted(_actions(machine))):
            if (status, action) not in machine.table:
                yield pytest.param(machine, status, action, id=f"{name}-{status.value}-{action}")


@pytest.mark.parametrize("machine,status,action", list(_illegal_pairs()))
def test_unlisted_transition_is_rejected(machine, status, action):
    with pytest.raises(InvalidStateError):
        machine.transition(status, action)


@pytest.mark.parametrize("name", sorted(MACHINES))
def test_transitions_only_move_forward(name):
    machine, statuses, terminal = MACHINES[name]
    rank = {status: index for index, status in enumerate(statuses)}

    for (current, action), target in machine.table.items():
        assert current not in terminal, f"{action} leaves terminal status {current.value}"
        assert rank[target] >= rank[current], f"{action} moves {current.value} back to {target.value}"
        assert machine.transition(current, action) is target


@pytest.mark.parametrize("name", sorted(MACHINES))
def test_terminal_statuses_accept_no_action(name):
    machine, _, terminal = MACHINES[name]
    for status, action in product(sorted(terminal, key=lambda s: s.value), sorted(_actions(machine))):
        with pytest.raises(InvalidStateError):
            machine.transition(status, action)


def test_rejection_message_names_the_rule():
    with pytest.raises(InvalidStateError, match="Only draft POs can be edited"):
        PURCHASE_ORDER_MACHINE.transition(PurchaseOrderStatus.SENT, "edit")
    with pytest.raises(InvalidStateError, match="Cannot proc_verify receiving in status RECEIVED"):
        RECEIVING_MACHINE.transition(ReceivingStatus.RECEIVED, "proc_verify")
