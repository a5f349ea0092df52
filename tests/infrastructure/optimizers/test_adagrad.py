import unittest

import numpy as np

from keygraph.infrastructure.graph import Graph, Session
from keygraph.infrastructure.optimizers import ACCUMULATOR, AdaGrad, GradAndVar


def _calculate_accum(accum, grads):
    # accum + g * g
    return accum + grads * grads


def _calculate(param, accum, grads, learning_rate, epsilon=1e-7):
    # param - lr * g / (sqrt(accum) + epsilon)
    return param - learning_rate * grads / (np.sqrt(accum) + epsilon)


class TestAdaGrad(unittest.TestCase):
    def test_optimizer_name_and_defaults(self):
        opt = AdaGrad(Graph())
        self.assertEqual(opt.optimizer_name, "Adagrad")
        self.assertAlmostEqual(opt.learning_rate, 0.001)
        self.assertAlmostEqual(opt.initial_accumulator_value, 0.01)
        self.assertAlmostEqual(opt.epsilon, 1e-7)

    def test_basic(self):
        num_steps = 3
        var0_np = np.array([1.0, 2.0])
        var1_np = np.array([3.0, 4.0])
        grads0_np = np.array([0.1, 0.1])
        grads1_np = np.array([0.01, 0.01])
        accum0_np = np.array([0.1, 0.1])
        accum1_np = np.array([0.1, 0.1])
        learning_rate = 3.0

        graph = Graph()
        var0 = graph.variable((2,), name="var0", initial_value=var0_np)
        var1 = graph.variable((2,), name="var1", initial_value=var1_np)
        grads0 = graph.constant(grads0_np, dtype=np.float32)
        grads1 = graph.constant(grads1_np, dtype=np.float32)

        opt = AdaGrad(graph, learning_rate=learning_rate, initial_accumulator_value=0.1)
        update = opt.apply_gradients(
            [GradAndVar(grads0, var0), GradAndVar(grads1, var1)], "AdaGradTest"
        )

        accumulators = [opt.get_slot(var0, ACCUMULATOR), opt.get_slot(var1, ACCUMULATOR)]
        self.assertEqual(accumulators[0].shape, var0.shape)
        self.assertEqual(accumulators[1].shape, var1.shape)

        with Session(graph) as sess:
            sess.run(graph.init())
            np.testing.assert_allclose(sess.evaluate(var0), var0_np)
            np.testing.assert_allclose(sess.evaluate(var1), var1_np)
            np.testing.assert_allclose(sess.evaluate(accumulators[0]), accum0_np, rtol=1e-6)

            for _ in range(num_steps):
                sess.run(update, opt.feed_map)

                accum0_np = _calculate_accum(accum0_np, grads0_np)
                var0_np = _calculate(var0_np, accum0_np, grads0_np, learning_rate)
                np.testing.assert_allclose(sess.evaluate(var0), var0_np, rtol=1e-5)

                accum1_np = _calculate_accum(accum1_np, grads1_np)
                var1_np = _calculate(var1_np, accum1_np, grads1_np, learning_rate)
                np.testing.assert_allclose(sess.evaluate(var1), var1_np, rtol=1e-5)

            np.testing.assert_allclose(sess.evaluate(accumulators[0]), accum0_np, rtol=1e-5)

    def test_float64_variable_keeps_dtype(self):
        graph = Graph()
        var = graph.variable((2,), dtype=np.float64, name="var", initial_value=[1.0, 2.0])
        grad = graph.constant(np.array([0.5, 0.5]))
        opt = AdaGrad(graph, learning_rate=1.0, initial_accumulator_value=0.0)
        update = opt.apply_gradients([(grad, var)])
        self.assertEqual(opt.get_slot(var, ACCUMULATOR).dtype, np.float64)
        with Session(graph) as sess:
            sess.run(graph.init())
            sess.run(update, opt.feed_map)
            out = sess.evaluate(var)
        self.assertEqual(out.dtype, np.float64)
        # accum = 0.25, step = 0.5 / (0.5 + 1e-7)
        np.testing.assert_allclose(out, [1.0 - 0.5 / (0.5 + 1e-7), 2.0 - 0.5 / (0.5 + 1e-7)])

    def test_invalid_hyperparams_raise(self):
        with self.assertRaises(ValueError):
            AdaGrad(Graph(), initial_accumulator_value=-1.0)
        with self.assertRaises(ValueError):
            AdaGrad(Graph(), epsilon=0.0)

    def test_config(self):
        opt = AdaGrad(Graph(), learning_rate=0.5, initial_accumulator_value=0.2)
        self.assertEqual(
            opt.get_config(),
            {
                "name": "Adagrad",
                "learning_rate": 0.5,
                "initial_accumulator_value": 0.2,
                "epsilon": 1e-7,
            },
        )


if __name__ == "__main__":
    unittest.main()
