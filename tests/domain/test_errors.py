import unittest

from keygraph.domain import (
    DuplicateSlotError,
    MissingFeedError,
    SessionClosedError,
    ShapeMismatchError,
    UninitializedVariableError,
)


class TestErrors(unittest.TestCase):
    def test_uninitialized_variable_error_carries_name(self):
        err = UninitializedVariableError("var0")
        self.assertEqual(err.name, "var0")
        self.assertIn("var0", str(err))
        self.assertIsInstance(err, RuntimeError)

    def test_missing_feed_error_is_key_error_with_readable_message(self):
        err = MissingFeedError("x")
        self.assertIsInstance(err, KeyError)
        self.assertEqual(str(err), "Placeholder 'x' must be fed a value.")

    def test_shape_mismatch_error_fields(self):
        err = ShapeMismatchError("w", (2,), (3,))
        self.assertEqual(err.expected, (2,))
        self.assertEqual(err.actual, (3,))
        self.assertIsInstance(err, ValueError)

    def test_duplicate_slot_error_fields(self):
        err = DuplicateSlotError("var0", "momentum")
        self.assertEqual((err.variable, err.slot), ("var0", "momentum"))

    def test_session_closed_error_message(self):
        self.assertIn("closed", str(SessionClosedError()))


if __name__ == "__main__":
    unittest.main()
