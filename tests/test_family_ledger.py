"""End-to-end tests through the FamilyLedger facade."""

from datetime import timedelta
from decimal import Decimal

from zenledger.schemas import RequestStatus, ServiceResult, Transaction, TransactionType
from zenledger.schemas.common import utcnow


class TestSignupAndLogin:
    async def test_signup_logs_parent_in_and_persists_session(self, ledger):
        result = await ledger.signup("Demo Family", "Admin", "x")
        assert result.success
        session = result.data
        assert session.family_id == "demo_family"

        restored = await ledger.restore_session()
        assert restored.data == session

    async def test_duplicate_signup_normalized(self, ledger):
        assert (await ledger.signup("Demo Family", "Admin", "x")).success
        second = await ledger.signup("demo_family", "admin", "y")
        assert not second.success
        assert second.code == "DUPLICATE_IDENTITY"

    async def test_bad_login_is_a_result_not_an_exception(self, ledger):
        result = await ledger.login("nowhere", "nobody", "pw")
        assert isinstance(result, ServiceResult)
        assert not result.success
        assert result.code == "INVALID_CREDENTIALS"
        assert result.error

    async def test_logout_clears_session(self, ledger, family):
        await ledger.logout()
        assert (await ledger.restore_session()).data is None

    async def test_disabled_child_cannot_log_in(self, ledger, family):
        assert (await ledger.set_child_active(family.parent, family.child.id, False)).success
        result = await ledger.login(family.family_id, "sam", "child-pass")
        assert result.code == "ACCOUNT_DISABLED"


class TestExpiredSession:
    async def test_expired_session_is_treated_as_absent(self, ledger, family):
        stale = family.parent.model_copy(update={"exp": utcnow() - timedelta(seconds=1)})
        ledger.store.save(stale)

        result = await ledger.list_users(stale)
        assert not result.success
        assert result.code == "EXPIRED"
        assert (await ledger.restore_session()).data is None


class TestRoleGates:
    async def test_child_cannot_provision(self, ledger, family):
        result = await ledger.create_child(family.child_session, "eve", "pw")
        assert result.code == "UNAUTHORIZED"

    async def test_child_cannot_resolve(self, ledger, family):
        request = (await ledger.create_request(family.child_session, Decimal("5"), "pens")).data
        result = await ledger.resolve_request(
            family.child_session, request.id, RequestStatus.APPROVED
        )
        assert result.code == "UNAUTHORIZED"

    async def test_parent_cannot_create_request(self, ledger, family):
        result = await ledger.create_request(family.parent, Decimal("5"), "pens")
        assert result.code == "UNAUTHORIZED"

    async def test_child_cannot_allocate_or_export(self, ledger, family):
        session = family.child_session
        result = await ledger.allocate(session, family.child.id, Decimal("5"))
        assert result.code == "UNAUTHORIZED"
        assert (await ledger.export_ledger_csv(session, family.child.id)).code == "UNAUTHORIZED"
        assert (await ledger.list_audit(session)).code == "UNAUTHORIZED"
        assert (await ledger.reset_family(session)).code == "UNAUTHORIZED"

    async def test_child_cannot_see_sibling_balance(self, ledger, family):
        eve = (await ledger.create_child(family.parent, "eve", "pw")).data
        result = await ledger.balance(family.child_session, eve.id)
        assert result.code == "UNAUTHORIZED"

    async def test_balance_of_unknown_user_is_not_found(self, ledger, family):
        result = await ledger.balance(family.parent, "no-such-user")
        assert not result.success
        assert result.code == "NOT_FOUND"

        # A real zero balance is still reported
        eve = (await ledger.create_child(family.parent, "eve", "pw")).data
        assert (await ledger.balance(family.parent, eve.id)).data == Decimal("0")


class TestSpending:
    async def test_overspend_rejected_and_ledger_unchanged(self, ledger, family):
        assert (await ledger.allocate(family.parent, family.child.id, Decimal("100"))).success

        result = await ledger.spend(family.child_session, Decimal("150"), "console")
        assert not result.success
        assert result.code == "VALIDATION_FAILED"

        txs = (await ledger.list_transactions(family.parent)).data
        assert len(txs) == 1
        assert (await ledger.balance(family.child_session)).data == Decimal("100")

    async def test_spend_within_balance(self, ledger, family):
        await ledger.allocate(family.parent, family.child.id, Decimal("100"))
        spent = await ledger.spend(family.child_session, Decimal("40.50"), "lunch")
        assert spent.success
        assert spent.data.type == TransactionType.DEBIT
        assert (await ledger.balance(family.child_session)).data == Decimal("59.50")

    async def test_record_transaction_for_outsider_rejected(self, ledger, family):
        tx = Transaction(
            user_id="someone-else", amount=Decimal("1"), type=TransactionType.CREDIT,
            description="gift",
        )
        result = await ledger.record_transaction(family.parent, tx)
        assert result.code == "UNAUTHORIZED"

    async def test_non_positive_amount_rejected(self, ledger, family):
        result = await ledger.allocate(family.parent, family.child.id, Decimal("0"))
        assert result.code == "VALIDATION_FAILED"

    async def test_family_balance_sums_children(self, ledger, family):
        eve = (await ledger.create_child(family.parent, "eve", "pw")).data
        await ledger.allocate(family.parent, family.child.id, Decimal("10"))
        await ledger.allocate(family.parent, eve.id, Decimal("15"))
        assert (await ledger.family_balance(family.parent)).data == Decimal("25")


class TestFamilyFlow:
    async def test_request_approval_end_to_end(self, ledger, family):
        before = (await ledger.balance(family.parent, family.child.id)).data

        request = await ledger.create_request(family.child_session, Decimal("500"), "book")
        assert request.success
        approved = await ledger.resolve_request(
            family.parent, request.data.id, RequestStatus.APPROVED
        )
        assert approved.success
        assert approved.data.status == RequestStatus.APPROVED

        after = (await ledger.balance(family.parent, family.child.id)).data
        assert after - before == Decimal("500")
        txs = (await ledger.list_transactions(family.child_session)).data
        assert [t.description for t in txs].count("Approved: book") == 1

    async def test_approving_twice_credits_once(self, ledger, family):
        request = (await ledger.create_request(family.child_session, Decimal("20"), "ball")).data
        await ledger.resolve_request(family.parent, request.id, RequestStatus.APPROVED)
        again = await ledger.resolve_request(family.parent, request.id, RequestStatus.APPROVED)
        assert again.success
        assert len((await ledger.list_transactions(family.parent)).data) == 1

    async def test_settle_approved(self, ledger, family):
        assert (await ledger.settle_approved(family.parent)).data == []

    async def test_messages(self, ledger, family):
        sent = await ledger.send(family.parent, family.child.id, "well done")
        assert sent.success
        assert (await ledger.unread_count(family.child_session)).data == 1
        assert (await ledger.mark_read(family.child_session, sent.data.id)).success
        assert (await ledger.mark_read(family.child_session, sent.data.id)).success
        assert (await ledger.unread_count(family.child_session)).data == 0
        assert len((await ledger.list_messages(family.child_session)).data) == 1

    async def test_unknown_message_is_not_found(self, ledger, family):
        assert (await ledger.mark_read(family.child_session, "nope")).code == "NOT_FOUND"


class TestAuditAndExport:
    async def test_actions_are_audited_newest_first(self, ledger, family):
        await ledger.allocate(family.parent, family.child.id, Decimal("10"))
        entries = (await ledger.list_audit(family.parent)).data
        assert [e.action for e in entries][:2] == ["LEDGER_UPDATE", "CHILD_CREATED"]
        assert entries[0].details["amount"] == "10.00"

    async def test_exports(self, ledger, family):
        await ledger.allocate(family.parent, family.child.id, Decimal("10"))
        ledger_csv = (await ledger.export_ledger_csv(family.parent, family.child.id)).data
        summary = (await ledger.export_monthly_csv(family.parent, family.child.id)).data
        assert ledger_csv.splitlines()[1].split(",")[1:3] == ["CREDIT", "10.00"]
        assert summary.splitlines()[1].endswith(",10.00,0.00,10.00")

    async def test_export_of_parent_is_not_found(self, ledger, family):
        result = await ledger.export_ledger_csv(family.parent, family.parent.user_id)
        assert result.code == "NOT_FOUND"


class TestResetAndOnboarding:
    async def test_reset_family(self, ledger, family):
        await ledger.allocate(family.parent, family.child.id, Decimal("10"))
        await ledger.mark_onboarding_seen(family.child.id)

        assert (await ledger.reset_family(family.parent)).success

        users = (await ledger.list_users(family.parent)).data
        assert [u.id for u in users] == [family.parent.user_id]
        assert (await ledger.list_transactions(family.parent)).data == []
        assert (await ledger.has_seen_onboarding(family.child.id)).data is False
        assert [e.action for e in (await ledger.list_audit(family.parent)).data] == ["FAMILY_RESET"]

    async def test_onboarding_flag(self, ledger, family):
        assert (await ledger.has_seen_onboarding(family.parent.user_id)).data is False
        await ledger.mark_onboarding_seen(family.parent.user_id)
        assert (await ledger.has_seen_onboarding(family.parent.user_id)).data is True
