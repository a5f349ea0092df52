import unittest

import numpy as np

from keygraph.infrastructure.graph import Graph, ReduceSum, Session, Square
from keygraph.infrastructure.optimizers import MOMENTUM, GradAndVar, Momentum

VAR0_INIT = [1.0, 2.0]
VAR1_INIT = [3.0, 4.0]
GRADS0 = [0.1, 0.1]
GRADS1 = [0.01, 0.01]


def _build(graph):
    var0 = graph.variable((2,), name="var0", initial_value=VAR0_INIT)
    var1 = graph.variable((2,), name="var1", initial_value=VAR1_INIT)
    grads_and_vars = [
        GradAndVar(graph.constant(GRADS0), var0),
        GradAndVar(graph.constant(GRADS1), var1),
    ]
    return var0, var1, grads_and_vars


class TestMomentum(unittest.TestCase):
    def test_optimizer_name_and_defaults(self):
        opt = Momentum(Graph())
        self.assertEqual(opt.optimizer_name, "Momentum")
        self.assertAlmostEqual(opt.learning_rate, 0.01)
        self.assertEqual(opt.momentum, 0.0)
        self.assertFalse(opt.use_nesterov)

    def test_basic_without_momentum_is_gradient_descent(self):
        graph = Graph()
        var0, var1, gvs = _build(graph)
        opt = Momentum(graph, learning_rate=3.0)
        update = opt.apply_gradients(gvs, "SGDTest")

        with Session(graph) as sess:
            sess.run(graph.init())
            sess.run(update, opt.feed_map)
            np.testing.assert_allclose(sess.evaluate(var0), [0.7, 1.7], rtol=1e-6)
            np.testing.assert_allclose(sess.evaluate(var1), [2.97, 3.97], rtol=1e-6)

    def test_momentum(self):
        graph = Graph()
        var0, var1, gvs = _build(graph)
        with Momentum(graph, learning_rate=2.0, momentum=0.9) as opt:
            update = opt.apply_gradients(gvs, "SGDTest")

            slot0 = opt.get_slot(var0, MOMENTUM)
            slot1 = opt.get_slot(var1, MOMENTUM)
            self.assertEqual(slot0.shape, var0.shape)
            self.assertEqual(slot1.shape, var1.shape)
            self.assertEqual(slot0.name, "var0-momentum")
            self.assertFalse(slot0.trainable)

            with Session(graph) as sess:
                sess.run(graph.init())
                np.testing.assert_allclose(sess.evaluate(slot0), [0.0, 0.0])

                sess.run(update, opt.feed_map)  # step 1
                np.testing.assert_allclose(sess.evaluate(slot0), [0.1, 0.1], rtol=1e-6)
                np.testing.assert_allclose(sess.evaluate(slot1), [0.01, 0.01], rtol=1e-6)
                np.testing.assert_allclose(sess.evaluate(var0), [0.8, 1.8], rtol=1e-6)
                np.testing.assert_allclose(sess.evaluate(var1), [2.98, 3.98], rtol=1e-6)

                sess.run(update, opt.feed_map)  # step 2
                m0 = 0.9 * 0.1 + 0.1
                m1 = 0.9 * 0.01 + 0.01
                np.testing.assert_allclose(sess.evaluate(slot0), [m0, m0], rtol=1e-6)
                np.testing.assert_allclose(sess.evaluate(slot1), [m1, m1], rtol=1e-6)
                np.testing.assert_allclose(
                    sess.evaluate(var0), [0.8 - m0 * 2.0, 1.8 - m0 * 2.0], rtol=1e-6
                )
                np.testing.assert_allclose(
                    sess.evaluate(var1), [2.98 - m1 * 2.0, 3.98 - m1 * 2.0], rtol=1e-6
                )
        self.assertEqual(opt.feed_map, {})

    def test_nesterov_matches_reference(self):
        graph = Graph()
        var0, _, gvs = _build(graph)
        lr, mom = 2.0, 0.9
        opt = Momentum(graph, learning_rate=lr, momentum=mom, use_nesterov=True)
        update = opt.apply_gradients(gvs)

        var_np = np.array(VAR0_INIT)
        accum_np = np.zeros(2)
        g = np.array(GRADS0)
        with Session(graph) as sess:
            sess.run(graph.init())
            for _ in range(3):
                sess.run(update, opt.feed_map)
                accum_np = accum_np * mom + g
                var_np = var_np - lr * g - lr * mom * accum_np
                np.testing.assert_allclose(sess.evaluate(var0), var_np, rtol=1e-5)

    def test_learning_rate_decay(self):
        graph = Graph()
        var0, var1, gvs = _build(graph)
        lr = 3.0
        opt = Momentum(graph, learning_rate=lr)
        update = opt.apply_gradients(gvs, "MomentumTest")

        expected_var0 = [[0.7, 1.7], [0.67, 1.67], [0.667, 1.667]]
        expected_var1 = [[2.97, 3.97], [2.967, 3.967], [2.9667, 3.9667]]
        with Session(graph) as sess:
            sess.run(graph.init())
            for step in range(3):
                sess.run(update, opt.feed_map)
                np.testing.assert_allclose(sess.evaluate(var0), expected_var0[step], rtol=1e-6)
                np.testing.assert_allclose(sess.evaluate(var1), expected_var1[step], rtol=1e-6)
                lr *= 0.1
                opt.learning_rate = lr

    def test_slots_are_created_once_per_variable(self):
        graph = Graph()
        var0, _, gvs = _build(graph)
        opt = Momentum(graph, learning_rate=1.0, momentum=0.5)
        opt.apply_gradients(gvs)
        slot = opt.get_slot(var0, MOMENTUM)
        opt.apply_gradients(gvs)
        self.assertIs(opt.get_slot(var0, MOMENTUM), slot)
        self.assertEqual(opt.get_slot_names(), [MOMENTUM])

    def test_minimize_converges(self):
        graph = Graph()
        w = graph.variable((2,), name="w", initial_value=[3.0, -2.0])
        loss = ReduceSum(Square(w - 1.0))
        opt = Momentum(graph, learning_rate=0.05, momentum=0.9)
        train = opt.minimize(loss)
        with Session(graph) as sess:
            sess.run(graph.init())
            for _ in range(300):
                sess.run(train, opt.feed_map)
            np.testing.assert_allclose(sess.evaluate(w), [1.0, 1.0], atol=1e-3)

    def test_rejects_negative_momentum(self):
        with self.assertRaises(ValueError):
            Momentum(Graph(), momentum=-0.1)

    def test_config(self):
        opt = Momentum(Graph(), name="mom", learning_rate=0.1, momentum=0.9, use_nesterov=True)
        self.assertEqual(
            opt.get_config(),
            {"name": "mom", "learning_rate": 0.1, "momentum": 0.9, "use_nesterov": True},
        )


if __name__ == "__main__":
    unittest.main()
