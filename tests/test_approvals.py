import pytest
from sqlalchemy import update
from cement_rewards import db
from cement_rewards.models.transaction import Transaction, TransactionStatus
from cement_rewards.models.dealer_approval import DealerApproval
from cement_rewards.models.notification import Notification
from cement_rewards.services.points import PointService
from cement_rewards.services.approval import ApprovalService
from cement_rewards.services.ledger import transition
from cement_rewards.exceptions import (
    InvalidTransitionError,
    StaleStateError,
    PermissionDeniedError,
    NotFoundError,
    ValidationError,
)

@pytest.fixture
def earn_request(buyer, dealer):
    return PointService.submit_earn_request(buyer, dealer.id, 'PPC', 10)

def move_behind_the_session(transaction_id, status):
    """Change a row without the in-memory object seeing it, as another writer would"""
    db.session.execute(
        update(Transaction).where(Transaction.id == transaction_id).values(status=status),
        execution_options={'synchronize_session': False}
    )

def test_two_step_approval_credits_once(buyer, dealer, admin):
    tx = PointService.submit_earn_request(buyer, dealer.id, 'OPC', 20)
    assert tx.amount == 100
    assert tx.status == 'pending'

    ApprovalService.dealer_approve(tx.id, dealer)
    assert tx.status == 'dealer_approved'
    assert buyer.points == 0

    ApprovalService.admin_approve(tx.id, admin)
    assert tx.status == 'approved'
    assert buyer.points == 100

    approval = DealerApproval.query.filter_by(transaction_id=tx.id).one()
    assert approval.dealer_id == dealer.id
    assert approval.amount == 100
    assert approval.status == 'approved'

def test_dealer_rejection_keeps_prior_balance(make_user, dealer):
    buyer = make_user('contractor', points=30)
    tx = PointService.submit_earn_request(buyer, dealer.id, 'PPC', 5)
    assert tx.amount == 50

    ApprovalService.dealer_reject(tx.id, dealer)
    assert tx.status == 'rejected'
    assert buyer.points == 30

def test_admin_cannot_skip_dealer_step(buyer, admin, earn_request):
    with pytest.raises(InvalidTransitionError):
        ApprovalService.admin_approve(earn_request.id, admin)
    assert earn_request.status == 'pending'
    assert buyer.points == 0

def test_second_admin_approval_is_refused(buyer, dealer, admin, earn_request):
    ApprovalService.dealer_approve(earn_request.id, dealer)
    ApprovalService.admin_approve(earn_request.id, admin)

    with pytest.raises(InvalidTransitionError):
        ApprovalService.admin_approve(earn_request.id, admin)
    assert buyer.points == 100

def test_dealer_rejection_is_terminal(buyer, dealer, admin, earn_request):
    ApprovalService.dealer_reject(earn_request.id, dealer)
    assert earn_request.status == 'rejected'

    with pytest.raises(InvalidTransitionError):
        ApprovalService.dealer_approve(earn_request.id, dealer)
    with pytest.raises(InvalidTransitionError):
        ApprovalService.admin_approve(earn_request.id, admin)
    with pytest.raises(InvalidTransitionError):
        ApprovalService.admin_reject(earn_request.id, admin)
    assert buyer.points == 0
    assert DealerApproval.query.count() == 0

def test_dealer_cannot_reject_after_vouching(dealer, earn_request):
    ApprovalService.dealer_approve(earn_request.id, dealer)
    with pytest.raises(InvalidTransitionError):
        ApprovalService.dealer_reject(earn_request.id, dealer)
    assert earn_request.status == 'dealer_approved'

def test_admin_rejects_dealer_approved_request(buyer, dealer, admin, earn_request):
    ApprovalService.dealer_approve(earn_request.id, dealer)
    ApprovalService.admin_reject(earn_request.id, admin)

    assert earn_request.status == 'rejected'
    assert buyer.points == 0
    assert DealerApproval.query.filter_by(transaction_id=earn_request.id).one().status == 'rejected'

def test_only_the_named_dealer_can_review(make_user, earn_request):
    other_dealer = make_user('dealer')
    with pytest.raises(PermissionDeniedError):
        ApprovalService.dealer_approve(earn_request.id, other_dealer)
    with pytest.raises(PermissionDeniedError):
        ApprovalService.dealer_reject(earn_request.id, other_dealer)
    assert earn_request.status == 'pending'

def test_buyers_cannot_approve(buyer, earn_request):
    with pytest.raises(PermissionDeniedError):
        ApprovalService.dealer_approve(earn_request.id, buyer)
    with pytest.raises(PermissionDeniedError):
        ApprovalService.admin_approve(earn_request.id, buyer)

def test_dealer_cannot_take_admin_step(dealer, earn_request):
    ApprovalService.dealer_approve(earn_request.id, dealer)
    with pytest.raises(PermissionDeniedError):
        ApprovalService.admin_approve(earn_request.id, dealer)

def test_unknown_transaction(admin, dealer):
    with pytest.raises(NotFoundError):
        ApprovalService.admin_approve(12345, admin)
    with pytest.raises(NotFoundError):
        ApprovalService.dealer_approve(12345, dealer)

def test_completion_only_for_approved_redemptions(dealer, admin, earn_request):
    ApprovalService.dealer_approve(earn_request.id, dealer)
    ApprovalService.admin_approve(earn_request.id, admin)
    with pytest.raises(InvalidTransitionError):
        ApprovalService.mark_completed(earn_request.id, admin)

def test_transition_detects_concurrent_change(earn_request):
    assert earn_request.status == 'pending'
    move_behind_the_session(earn_request.id, 'dealer_approved')

    with pytest.raises(StaleStateError):
        transition(earn_request, TransactionStatus.DEALER_APPROVED)
    db.session.rollback()

def test_stale_dealer_approval_leaves_no_partial_state(buyer, dealer, earn_request):
    tx_id = earn_request.id
    assert earn_request.status == 'pending'
    move_behind_the_session(tx_id, 'rejected')

    with pytest.raises(StaleStateError):
        ApprovalService.dealer_approve(tx_id, dealer)

    assert DealerApproval.query.count() == 0
    assert Notification.query.filter_by(user_id=buyer.id).count() == 0

def test_racing_admin_approval_does_not_credit_twice(buyer, dealer, admin, earn_request):
    ApprovalService.dealer_approve(earn_request.id, dealer)
    assert earn_request.status == 'dealer_approved'

    # Another admin finalized it first; this session still sees dealer_approved
    move_behind_the_session(earn_request.id, 'approved')
    with pytest.raises(StaleStateError):
        ApprovalService.admin_approve(earn_request.id, admin)

    assert buyer.points == 0

def test_workflow_notifications(buyer, dealer, admin, earn_request):
    ApprovalService.dealer_approve(earn_request.id, dealer)
    ApprovalService.admin_approve(earn_request.id, admin)

    titles = [n.title for n in Notification.query.filter_by(user_id=buyer.id).order_by(Notification.id)]
    assert titles == ['Dealer approved your request', 'Points approved']

def test_dealer_queue_and_stats(buyer, dealer, earn_request):
    second = PointService.submit_earn_request(buyer, dealer.id, 'OPC', 4)
    ApprovalService.dealer_approve(second.id, dealer)

    assert [t.id for t in ApprovalService.get_dealer_queue(dealer)] == [earn_request.id]
    assert len(ApprovalService.get_dealer_queue(dealer, status='all')) == 2
    with pytest.raises(ValidationError):
        ApprovalService.get_dealer_queue(dealer, status='someday')

    stats = ApprovalService.get_dealer_stats(dealer)
    assert stats['pending_approvals'] == 1
    assert stats['approved_today'] == 1
    # Counted once the admin finalizes
    assert stats['total_points_approved'] == 0

def test_admin_queue_and_stats(buyer, dealer, admin, earn_request, make_reward):
    second = PointService.submit_earn_request(buyer, dealer.id, 'OPC', 4)
    ApprovalService.dealer_approve(second.id, dealer)

    assert {t.id for t in ApprovalService.get_admin_queue(admin)} == {earn_request.id, second.id}
    assert [t.id for t in ApprovalService.get_admin_queue(admin, 'dealer_approved')] == [second.id]
    assert ApprovalService.get_admin_queue(admin, 'pending_redemptions') == []
    with pytest.raises(ValidationError):
        ApprovalService.get_admin_queue(admin, 'everything')

    assert ApprovalService.get_admin_stats(admin) == {
        'pending_points': 2,
        'pending_redemptions': 0,
        'dealer_approved': 1
    }
