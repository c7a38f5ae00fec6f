import unittest

from myblog.auth import Principal
from myblog.db import PostRecord
from myblog.errors import Forbidden, NotFound, Unauthenticated
from myblog.policy import (
    ADMIN,
    NOT_FOUND,
    OWNERSHIP,
    UNAUTHENTICATED,
    Operation,
    Policy,
    enforce,
)

ALICE = Principal(id="alice")
BOB = Principal(id="bob")


class PolicyTests(unittest.TestCase):
    def setUp(self):
        self.policy = Policy()
        self.post = PostRecord(title="t", content="c", author_id="alice", id="p1")

    def test_post_reads_are_public(self):
        for operation in (Operation.READ_POST, Operation.LIST_POSTS):
            self.assertTrue(self.policy.decide(operation, None))
            self.assertTrue(self.policy.decide(operation, BOB))

    def test_posts_by_author_requires_same_principal(self):
        decide = self.policy.decide
        op = Operation.LIST_POSTS_BY_AUTHOR
        self.assertTrue(decide(op, ALICE, target_user_id="alice"))
        self.assertEqual(decide(op, BOB, target_user_id="alice").reason, OWNERSHIP)
        self.assertEqual(
            decide(op, None, target_user_id="alice").reason, UNAUTHENTICATED
        )

    def test_create_post_requires_principal(self):
        self.assertTrue(self.policy.decide(Operation.CREATE_POST, ALICE))
        self.assertEqual(
            self.policy.decide(Operation.CREATE_POST, None).reason, UNAUTHENTICATED
        )

    def test_mutation_checks_existence_before_ownership(self):
        for op in (Operation.UPDATE_POST, Operation.DELETE_POST):
            self.assertEqual(self.policy.decide(op, BOB, None).reason, NOT_FOUND)
            self.assertEqual(self.policy.decide(op, BOB, self.post).reason, OWNERSHIP)
            self.assertTrue(self.policy.decide(op, ALICE, self.post))

    def test_public_contacts_are_scoped_to_active(self):
        decision = self.policy.decide(Operation.LIST_CONTACTS_PUBLIC, None)
        self.assertTrue(decision)
        self.assertEqual(decision.scope, {"active_only": True})

    def test_admin_operations_accept_any_principal_without_allow_list(self):
        for op in (
            Operation.LIST_CONTACTS_ADMIN,
            Operation.CREATE_CONTACT,
            Operation.UPDATE_CONTACT,
            Operation.DELETE_CONTACT,
            Operation.LIST_SUPPORT_MESSAGES,
        ):
            self.assertTrue(self.policy.decide(op, BOB))
            self.assertEqual(self.policy.decide(op, None).reason, UNAUTHENTICATED)

    def test_admin_allow_list(self):
        policy = Policy(admin_ids={"alice"})
        self.assertTrue(policy.decide(Operation.LIST_SUPPORT_MESSAGES, ALICE))
        self.assertEqual(
            policy.decide(Operation.LIST_SUPPORT_MESSAGES, BOB).reason, ADMIN
        )
        # Post ownership is unaffected by the allow-list.
        self.assertTrue(policy.decide(Operation.CREATE_POST, BOB))

    def test_support_submission_is_public(self):
        self.assertTrue(self.policy.decide(Operation.CREATE_SUPPORT_MESSAGE, None))

    def test_enforce_maps_reasons_to_errors(self):
        decide = self.policy.decide
        with self.assertRaises(Unauthenticated):
            enforce(decide(Operation.CREATE_POST, None))
        with self.assertRaises(NotFound):
            enforce(decide(Operation.UPDATE_POST, ALICE, None))
        with self.assertRaises(Forbidden) as ctx:
            enforce(
                decide(Operation.UPDATE_POST, BOB, self.post),
                {OWNERSHIP: "not yours"},
            )
        self.assertEqual(ctx.exception.message, "not yours")
        allowed = decide(Operation.READ_POST, None)
        self.assertIs(enforce(allowed), allowed)


if __name__ == "__main__":
    unittest.main()
