from typing import List

import jaxlie
import numpy as onp
import pytest

from jaxinit import initialization, noises, sparse
from jaxinit.core import FactorGraph, Values, symbol
from jaxinit.geometry import BetweenFactor, PriorFactor
from jaxinit.initialization import ANCHOR_KEY, GradientDescentConfig

NOISE = noises.Isotropic.make_from_sigma(6, 0.1)


def x(i: int) -> int:
    return symbol("x", i)


def _true_poses() -> List[jaxlie.SE3]:
    # Four poses on a square, each rotated by roughly 90 degrees from the last.
    return [
        jaxlie.SE3.from_rotation_and_translation(
            jaxlie.SO3.exp(onp.array([0.0, 0.0, theta])), onp.array(translation)
        )
        for theta, translation in [
            (0.0, [0.0, 0.0, 0.0]),
            (1.570796, [1.0, 2.0, 0.0]),
            (3.141593, [0.0, 2.0, 0.0]),
            (4.712389, [-1.0, 1.0, 0.0]),
        ]
    ]


def _make_graph() -> FactorGraph:
    poses = _true_poses()

    def between(i: int, j: int) -> BetweenFactor:
        return BetweenFactor.make(x(i), x(j), poses[i].inverse() @ poses[j], NOISE)

    return FactorGraph(
        [
            between(0, 1),
            between(1, 2),
            between(2, 3),
            between(2, 0),
            between(0, 3),
            PriorFactor.make(x(0), poses[0], NOISE),
        ]
    )


def _assert_rotations_close(values: Values, tol: float = 1e-6) -> None:
    assert sorted(values.keys()) == sorted(x(i) for i in range(4))
    for i, pose in enumerate(_true_poses()):
        value = values.at(x(i))
        rotation = value.rotation() if isinstance(value, jaxlie.SE3) else value
        onp.testing.assert_allclose(
            rotation.as_matrix(), pose.rotation().as_matrix(), atol=tol
        )


def _assert_poses_close(values: Values, tol: float = 1e-6) -> None:
    _assert_rotations_close(values, tol)
    for i, pose in enumerate(_true_poses()):
        value = values.at(x(i))
        assert isinstance(value, jaxlie.SE3)
        onp.testing.assert_allclose(value.translation(), pose.translation(), atol=tol)


def _perturbed_rotations() -> Values:
    deltas = onp.array(
        [
            [0.05, -0.03, 0.08],
            [-0.07, 0.02, 0.04],
            [0.03, 0.06, -0.05],
            [-0.02, -0.05, -0.07],
        ]
    )
    return Values(
        {
            x(i): pose.rotation() @ jaxlie.SO3.exp(deltas[i])
            for i, pose in enumerate(_true_poses())
        }
    )


def test_build_pose3_graph():
    pose3_graph = initialization.build_pose3_graph(_make_graph())
    poses = _true_poses()

    assert pose3_graph.size() == 6
    for factor in pose3_graph:
        assert isinstance(factor, BetweenFactor)
        assert isinstance(factor.T_a_b, jaxlie.SO3)
        assert factor.noise_model.get_residual_dim() == 3
        onp.testing.assert_allclose(
            factor.noise_model.get_precision_diagonal(), onp.full(3, 100.0)
        )

    # Priors become edges from the anchor.
    prior_edge = pose3_graph.at(5)
    assert prior_edge is not None
    assert prior_edge.keys == (ANCHOR_KEY, x(0))

    expected_first = BetweenFactor.make(
        x(0),
        x(1),
        (poses[0].inverse() @ poses[1]).rotation(),
        noises.Isotropic.make_from_sigma(3, 0.1),
    )
    assert expected_first.equals(pose3_graph.at(0), tol=1e-9)


def test_build_pose3_graph_skips_null_slots():
    graph = _make_graph()
    graph.remove(1)
    assert initialization.build_pose3_graph(graph).size() == 5


def test_build_pose3_graph_rejects_other_factors():
    graph = _make_graph()
    graph.push_back(
        PriorFactor.make(
            x(1), jaxlie.SO3.identity(), noises.Isotropic.make_from_sigma(3, 1.0)
        )
    )
    with pytest.raises(initialization.MalformedGraphError) as e:
        initialization.build_pose3_graph(graph)
    assert "Factor 6" in str(e.value)

    # Also a `ValueError`.
    with pytest.raises(ValueError):
        initialization.initialize(graph)


def test_build_pose3_graph_rejects_anchor_key():
    graph = _make_graph()
    graph.push_back(PriorFactor.make(ANCHOR_KEY, jaxlie.SE3.identity(), NOISE))
    with pytest.raises(initialization.MalformedGraphError):
        initialization.build_pose3_graph(graph)


def test_create_symbolic_graph():
    pose3_graph = initialization.build_pose3_graph(_make_graph())
    symbolic_graph = initialization.create_symbolic_graph(pose3_graph)

    assert len(symbolic_graph.adj_edges_map) == 5
    assert symbolic_graph.adj_edges_map[x(0)] == [0, 3, 4, 5]
    assert symbolic_graph.adj_edges_map[x(1)] == [0, 1]
    assert symbolic_graph.adj_edges_map[x(2)] == [1, 2, 3]
    assert symbolic_graph.adj_edges_map[x(3)] == [2, 4]
    assert symbolic_graph.adj_edges_map[ANCHOR_KEY] == [5]
    assert symbolic_graph.edge_keys[5] == (ANCHOR_KEY, x(0))
    onp.testing.assert_allclose(symbolic_graph.factor_id_to_precision[2], 100.0)
    assert initialization.find_disconnected_keys(symbolic_graph) == frozenset()


def test_orientations_chordal():
    pose3_graph = initialization.build_pose3_graph(_make_graph())
    orientations = initialization.compute_orientations_chordal(pose3_graph)
    _assert_rotations_close(orientations)
    assert ANCHOR_KEY not in orientations


def test_relaxed_rotations_then_normalize():
    pose3_graph = initialization.build_pose3_graph(_make_graph())
    symbolic_graph = initialization.create_symbolic_graph(pose3_graph)

    relaxed = initialization.solve_relaxed_rotations(symbolic_graph)
    assert set(relaxed.keys()) == {ANCHOR_KEY} | {x(i) for i in range(4)}
    onp.testing.assert_allclose(relaxed[ANCHOR_KEY], onp.eye(3), atol=1e-9)

    # Measurements are consistent, so the relaxation is already exact.
    onp.testing.assert_allclose(
        relaxed[x(2)], _true_poses()[2].rotation().as_matrix(), atol=1e-6
    )
    _assert_rotations_close(initialization.normalize_relaxed_rotations(relaxed))


def test_orientations_chordal_conjugate_gradient():
    pose3_graph = initialization.build_pose3_graph(_make_graph())
    orientations = initialization.compute_orientations_chordal(
        pose3_graph,
        linear_solver=sparse.ConjugateGradientSolver(tolerance=1e-12),
    )
    _assert_rotations_close(orientations, tol=1e-4)


def test_single_gradient():
    R1 = jaxlie.SO3.identity()
    R2 = jaxlie.SO3.from_matrix(
        onp.array(
            [
                [0.0, -1.0, 0.0],
                [1.0, 0.0, 0.0],
                [0.0, 0.0, 1.0],
            ]
        )
    )
    actual = initialization.gradient_tron(R1, R2, a=6.010534238540223, b=1.0)
    onp.testing.assert_allclose(actual, [0.0, 0.0, 1.962658662803917], atol=1e-6)


def test_gradient_near_identity():
    R = jaxlie.SO3.exp(onp.array([0.1, 0.2, 0.3]))
    onp.testing.assert_allclose(
        initialization.gradient_tron(R, R, a=6.0, b=1.0), onp.zeros(3), atol=1e-12
    )

    # Tiny errors still pull, with slope `a * b`.
    actual = initialization.gradient_tron(
        R, R @ jaxlie.SO3.exp(onp.array([1e-7, 0.0, 0.0])), a=6.0, b=1.0
    )
    onp.testing.assert_allclose(actual, [6e-7, 0.0, 0.0], rtol=1e-5, atol=1e-12)


def test_gradient_descent_config():
    onp.testing.assert_allclose(
        GradientDescentConfig().compute_a(), 6.010534238540223, rtol=1e-6
    )


def test_orientations_gradient():
    pose3_graph = initialization.build_pose3_graph(_make_graph())
    orientations, summary = initialization.compute_orientations_gradient(
        pose3_graph,
        _perturbed_rotations(),
        config=GradientDescentConfig(step_tolerance=1e-12),
        return_summary=True,
    )
    assert summary.converged
    assert summary.iterations < 10000
    _assert_rotations_close(orientations)


def test_orientations_gradient_from_poses():
    # Pose guesses are accepted; only their rotations are read.
    pose3_graph = initialization.build_pose3_graph(_make_graph())
    guess = Values(
        {
            key: jaxlie.SE3.from_rotation_and_translation(
                rotation, onp.array([5.0, 5.0, 5.0])
            )
            for key, rotation in _perturbed_rotations().items()
        }
    )
    orientations = initialization.compute_orientations_gradient(
        pose3_graph, guess, config=GradientDescentConfig(step_tolerance=1e-12)
    )
    _assert_rotations_close(orientations)
    assert all(isinstance(value, jaxlie.SO3) for _, value in orientations.items())


def test_orientations_gradient_not_converged():
    pose3_graph = initialization.build_pose3_graph(_make_graph())
    with pytest.warns(RuntimeWarning):
        orientations, summary = initialization.compute_orientations_gradient(
            pose3_graph,
            _perturbed_rotations(),
            config=GradientDescentConfig(max_iterations=3, min_iterations=1),
            verbose=True,
            return_summary=True,
        )
    assert not summary.converged
    assert summary.iterations == 3
    assert len(orientations) == 4


def test_orientations_gradient_bad_guess():
    pose3_graph = initialization.build_pose3_graph(_make_graph())

    missing = _perturbed_rotations()
    partial = Values({key: value for key, value in missing.items() if key != x(2)})
    with pytest.raises(KeyError):
        initialization.compute_orientations_gradient(pose3_graph, partial)

    extra = _perturbed_rotations()
    extra.insert(x(9), jaxlie.SO3.identity())
    with pytest.raises(ValueError, match="not in the graph: x9"):
        initialization.compute_orientations_gradient(pose3_graph, extra)

    wrong_type = _perturbed_rotations()
    wrong_type.update(x(1), jaxlie.SE2.identity())
    with pytest.raises(TypeError):
        initialization.compute_orientations_gradient(pose3_graph, wrong_type)


def test_orientations_gradient_from_identity():
    pose3_graph = initialization.build_pose3_graph(_make_graph())
    orientations, summary = initialization.compute_orientations_gradient(
        pose3_graph,
        Values({x(i): jaxlie.SE3.identity() for i in range(4)}),
        return_summary=True,
    )
    assert summary.converged
    assert 0.0 < summary.max_step < 1e-8
    _assert_rotations_close(orientations)


@pytest.mark.parametrize("use_gradient", [False, True])
def test_initialize_noisy_measurement(use_gradient: bool):
    graph = _make_graph()
    clean = graph.at(1)
    assert isinstance(clean, BetweenFactor)
    noise_offset = jaxlie.SE3.exp(onp.array([0.05, -0.04, 0.02, 0.03, -0.02, 0.05]))
    graph.replace(
        1, BetweenFactor.make(x(1), x(2), clean.T_a_b @ noise_offset, NOISE)
    )

    poses = initialization.initialize(graph, use_gradient=use_gradient)

    _assert_rotations_close(poses, tol=0.1)
    for i, pose in enumerate(_true_poses()):
        value = poses.at(x(i))
        assert isinstance(value, jaxlie.SE3)
        R = onp.asarray(value.rotation().as_matrix())
        onp.testing.assert_allclose(R @ R.T, onp.eye(3), atol=1e-9)
        onp.testing.assert_allclose(onp.linalg.det(R), 1.0, atol=1e-9)
        onp.testing.assert_allclose(value.translation(), pose.translation(), atol=0.2)

    # Between factors cannot see a common shift, so the prior is met exactly.
    onp.testing.assert_allclose(poses.at(x(0)).translation(), onp.zeros(3), atol=1e-6)


def test_given_guess_chordal():
    graph = _make_graph()
    # The chordal path does not read the guess.
    given_guess = Values({x(i): jaxlie.SE3.identity() for i in range(4)})
    poses = initialization.initialize(graph, given_guess=given_guess)
    _assert_poses_close(poses)


def test_given_guess_gradient():
    graph = _make_graph()
    given_guess = Values({x(i): pose for i, pose in enumerate(_true_poses())})
    poses = initialization.initialize(graph, given_guess=given_guess, use_gradient=True)
    _assert_poses_close(poses)
    assert poses.equals(given_guess, tol=1e-6)


def test_initialize_chordal():
    poses = initialization.initialize(_make_graph(), verbose=True)
    _assert_poses_close(poses)


def test_initialize_gradient_warm_start():
    poses = initialization.initialize(
        _make_graph(),
        use_gradient=True,
        config=GradientDescentConfig(step_tolerance=1e-12),
    )
    _assert_poses_close(poses)


def test_compute_poses():
    orientations = Values(
        {x(i): pose.rotation() for i, pose in enumerate(_true_poses())}
    )
    poses = initialization.compute_poses(_make_graph(), orientations)
    _assert_poses_close(poses)

    with pytest.raises(KeyError):
        initialization.compute_poses(
            _make_graph(),
            Values({key: value for key, value in orientations.items() if key != x(3)}),
        )

    orientations.update(x(3), jaxlie.SE2.identity())
    with pytest.raises(TypeError):
        initialization.compute_poses(_make_graph(), orientations)


def test_disconnected_keys():
    graph = _make_graph()
    graph.push_back(
        BetweenFactor.make(x(7), x(8), jaxlie.SE3.identity(), NOISE),
    )
    with pytest.raises(initialization.DisconnectedGraphError) as e:
        initialization.initialize(graph)
    assert e.value.keys == frozenset([x(7), x(8)])
    assert "x7" in str(e.value)

    pose3_graph = initialization.build_pose3_graph(graph)
    with pytest.raises(initialization.DisconnectedGraphError):
        initialization.compute_orientations_chordal(pose3_graph)


def test_no_prior():
    graph = _make_graph()
    graph.remove(5)
    with pytest.raises(initialization.DisconnectedGraphError) as e:
        initialization.initialize(graph)
    assert e.value.keys == frozenset(x(i) for i in range(4))
    assert isinstance(e.value, initialization.InitializationError)


def test_empty_graph():
    assert len(initialization.initialize(FactorGraph())) == 0
    assert len(initialization.initialize(FactorGraph(), use_gradient=True)) == 0
