import unittest

import numpy as np

from keygraph.domain import GraphModeError
from keygraph.infrastructure.graph import EagerEnvironment, Graph, ReduceSum, Session, Square
from keygraph.infrastructure.optimizers import (
    FIRST_MOMENT,
    SECOND_MOMENT,
    Adam,
    GradAndVar,
    adam_minimize,
)


def _adam_update(param, g, t, m, v, lr=0.001, beta1=0.9, beta2=0.999, epsilon=1e-8):
    lr_t = lr * np.sqrt(1 - beta2 ** (t + 1)) / (1 - beta1 ** (t + 1))
    m_t = beta1 * m + (1 - beta1) * g
    v_t = beta2 * v + (1 - beta2) * g * g
    param_t = param - lr_t * m_t / (np.sqrt(v_t) + epsilon)
    return param_t, m_t, v_t


class TestAdam(unittest.TestCase):
    def test_optimizer_name_and_defaults(self):
        opt = Adam(Graph())
        self.assertEqual(opt.optimizer_name, "Adam")
        self.assertAlmostEqual(opt.learning_rate, 0.001)
        self.assertEqual((opt.beta_1, opt.beta_2, opt.epsilon), (0.9, 0.999, 1e-8))

    def test_basic(self):
        var0_np = np.array([1.0, 2.0])
        var1_np = np.array([3.0, 4.0])
        grads0_np = np.array([0.1, 0.1])
        grads1_np = np.array([0.01, 0.01])
        m0, v0, m1, v1 = (np.zeros(2) for _ in range(4))

        graph = Graph()
        var0 = graph.variable((2,), name="var0", initial_value=var0_np)
        var1 = graph.variable((2,), name="var1", initial_value=var1_np)
        grads0 = graph.constant(grads0_np, dtype=np.float32)
        grads1 = graph.constant(grads1_np, dtype=np.float32)

        opt = Adam(graph, learning_rate=0.001)
        update = opt.apply_gradients([GradAndVar(grads0, var0), GradAndVar(grads1, var1)])

        first0 = opt.get_slot(var0, FIRST_MOMENT)
        second0 = opt.get_slot(var0, SECOND_MOMENT)
        self.assertEqual(first0.shape, var0.shape)
        self.assertEqual(second0.shape, var0.shape)
        self.assertEqual(first0.name, "var0-m")
        self.assertEqual(second0.name, "var0-v")

        with Session(graph) as sess:
            sess.run(graph.init())
            self.assertAlmostEqual(float(sess.evaluate(opt.beta1_power)), 0.9, places=6)
            self.assertAlmostEqual(float(sess.evaluate(opt.beta2_power)), 0.999, places=6)

            for t in range(3):
                sess.run(update, opt.feed_map)

                var0_np, m0, v0 = _adam_update(var0_np, grads0_np, t, m0, v0)
                var1_np, m1, v1 = _adam_update(var1_np, grads1_np, t, m1, v1)

                np.testing.assert_allclose(sess.evaluate(var0), var0_np, rtol=1e-5, atol=1e-6)
                np.testing.assert_allclose(sess.evaluate(var1), var1_np, rtol=1e-5, atol=1e-6)
                np.testing.assert_allclose(sess.evaluate(first0), m0, rtol=1e-5)
                np.testing.assert_allclose(sess.evaluate(second0), v0, rtol=1e-4)

                self.assertAlmostEqual(
                    float(sess.evaluate(opt.beta1_power)), 0.9 ** (t + 2), places=5
                )
                self.assertAlmostEqual(
                    float(sess.evaluate(opt.beta2_power)), 0.999 ** (t + 2), places=5
                )

    def test_beta_powers_created_once(self):
        graph = Graph()
        var0 = graph.variable((2,), name="var0", initial_value=[1.0, 2.0])
        var1 = graph.variable((2,), name="var1", initial_value=[3.0, 4.0])
        opt = Adam(graph)
        opt.apply_gradients([(graph.constant([0.1, 0.1]), var0)])
        power = opt.beta1_power
        opt.apply_gradients([(graph.constant([0.1, 0.1]), var1)])
        self.assertIs(opt.beta1_power, power)
        self.assertIsNotNone(opt.get_slot(var1, FIRST_MOMENT))
        names = [v.name for v in graph.variables()]
        self.assertEqual(names.count("Adam/beta1_power"), 1)

    def test_minimize_reduces_loss(self):
        graph = Graph()
        w = graph.variable((2,), name="w", initial_value=[1.0, 2.0])
        loss = ReduceSum(Square(w))
        opt = Adam(graph, learning_rate=0.1)
        train = opt.minimize(loss)
        with Session(graph) as sess:
            sess.run(graph.init())
            initial = float(sess.evaluate(loss))
            for _ in range(100):
                sess.run(train, opt.feed_map)
            final = float(sess.evaluate(loss))
        self.assertLess(final, initial * 0.1)

    def test_adam_minimize_endpoint(self):
        graph = Graph()
        w = graph.variable((1,), name="w", initial_value=[1.0])
        op = adam_minimize(graph, ReduceSum(Square(w)), learning_rate=0.1, shared_name="train")
        self.assertEqual(op.name, "train")
        with Session(graph) as sess:
            sess.run(graph.init())
            sess.run(op, op.optimizer.feed_map)
            # first Adam step moves by ~learning_rate
            np.testing.assert_allclose(sess.evaluate(w), [0.9], rtol=1e-4)

    def test_adam_minimize_rejects_eager(self):
        with self.assertRaises(GraphModeError):
            adam_minimize(EagerEnvironment(), None)

    def test_invalid_hyperparams_raise(self):
        with self.assertRaises(ValueError):
            Adam(Graph(), beta_1=1.0)
        with self.assertRaises(ValueError):
            Adam(Graph(), beta_2=-0.1)
        with self.assertRaises(ValueError):
            Adam(Graph(), epsilon=0.0)
        with self.assertRaises(ValueError):
            Adam(Graph(), learning_rate=-0.001)

    def test_repr(self):
        self.assertEqual(
            repr(Adam(Graph())),
            "Adam(learning_rate=0.001, beta_1=0.9, beta_2=0.999, epsilon=1e-08)",
        )


if __name__ == "__main__":
    unittest.main()
