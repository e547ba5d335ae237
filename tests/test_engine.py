"""
Tests for recursive tree mesh generation.

These tests verify determinism, mesh invariants (ring closure, index
validity, tip convergence, recursion bound) and the behavior of small,
hand-checkable trees built with a fixed draw sequence.
"""

import dataclasses
import logging

import numpy as np
import pytest

from arbormesh.buffers import GeometryOverflowError, IndexWidth
from arbormesh.config import (
    BranchForce,
    BranchParams,
    LeafBillboard,
    LeafParams,
    TreeSettings,
    TreeType,
)
from arbormesh.draw import SequenceDrawSource, make_draw_source
from arbormesh.engine import (
    LEVEL_COLORS,
    GenerationStats,
    generate,
    grow_tree,
    section_length_factor,
    taper_multiplier,
)
from arbormesh.skeleton import MIN_TIP_RADIUS, trunk_state


def uniform_settings(tree_type: TreeType = TreeType.DECIDUOUS) -> TreeSettings:
    """Two-tier tree whose rings all have five segments."""
    return TreeSettings(
        tree_type=tree_type,
        branch=BranchParams(
            levels=2,
            angle=(0.0, 60.0, 45.0),
            children=(3, 2, 0),
            gnarliness=(0.1, 0.2, 0.3),
            length=(10.0, 4.0, 2.0),
            radius_factor=(1.0, 0.6, 0.6),
            sections=(4, 3, 2),
            segments=(5, 5, 5),
            start=(0.0, 0.3, 0.3),
            taper=(0.6, 0.6, 0.6),
            twist=(0.1, 0.1, 0.1),
            trunk_base_radius=1.0,
        ),
    )


def segmented_trunk_settings() -> TreeSettings:
    """Deciduous trunk of three pieces with no side branches."""
    return TreeSettings(
        branch=BranchParams(
            levels=2,
            angle=(0.0, 0.0, 0.0),
            children=(0, 0, 0),
            gnarliness=(0.2, 0.2, 0.2),
            length=(12.0, 1.0, 1.0),
            radius_factor=(1.0, 1.0, 1.0),
            sections=(4, 4, 4),
            segments=(4, 4, 4),
            start=(0.0, 0.0, 0.0),
            taper=(0.6, 0.6, 0.6),
            twist=(0.0, 0.0, 0.0),
            trunk_base_radius=1.0,
        ),
    )


def rings(positions: list, stride: int) -> np.ndarray:
    """Reshape a buffer of equal-sized rings into [rings, stride, 3]."""
    assert len(positions) % stride == 0
    return np.asarray(positions).reshape(-1, stride, 3)


class TestDeterminism:
    """Tests for reproducible output."""

    def test_same_seed_identical_buffers(self) -> None:
        """Two generations with the same seed are identical."""
        settings = TreeSettings.deciduous()
        a = generate(settings, 42)
        b = generate(settings, 42)
        for buffers_a, buffers_b in ((a.branches, b.branches), (a.leaves, b.leaves)):
            assert buffers_a.positions == buffers_b.positions
            assert buffers_a.normals == buffers_b.normals
            assert buffers_a.uvs == buffers_b.uvs
            assert buffers_a.indices == buffers_b.indices
            assert buffers_a.colors == buffers_b.colors

    def test_same_seed_identical_bytes(self) -> None:
        """Packed arrays are byte-identical across generations."""
        settings = TreeSettings.evergreen()
        a = generate(settings, 9).branches.to_arrays()
        b = generate(settings, 9).branches.to_arrays()
        assert a.positions.tobytes() == b.positions.tobytes()
        assert a.indices.tobytes() == b.indices.tobytes()

    def test_different_seeds_differ(self) -> None:
        """Different seeds give different trees."""
        settings = uniform_settings()
        a = generate(settings, 1)
        b = generate(settings, 2)
        assert a.branches.positions != b.branches.positions


class TestMeshInvariants:
    """Tests for invariants that hold for every generated tree."""

    @pytest.mark.parametrize("tree_type", [TreeType.DECIDUOUS, TreeType.EVERGREEN])
    def test_ring_closure(self, tree_type: TreeType) -> None:
        """The seam vertex repeats the first vertex with U = 1."""
        mesh = generate(uniform_settings(tree_type), 3)
        stride = 6
        positions = rings(mesh.branches.positions, stride)
        normals = rings(mesh.branches.normals, stride)
        uvs = np.asarray(mesh.branches.uvs).reshape(-1, stride, 2)

        assert np.array_equal(positions[:, 0], positions[:, -1])
        assert np.array_equal(normals[:, 0], normals[:, -1])
        assert np.all(uvs[:, 0, 0] == 0.0)
        assert np.all(uvs[:, -1, 0] == 1.0)
        assert np.array_equal(uvs[:, 0, 1], uvs[:, -1, 1])

    @pytest.mark.parametrize(
        "settings", [TreeSettings.deciduous(), TreeSettings.evergreen()]
    )
    def test_index_validity(self, settings: TreeSettings) -> None:
        """Every index refers to a vertex in its own buffer."""
        mesh = generate(settings, 7)
        for buffers in (mesh.branches, mesh.leaves):
            assert len(buffers.indices) % 3 == 0
            assert min(buffers.indices) >= 0
            assert max(buffers.indices) < buffers.vertex_count

    def test_attribute_lengths_match(self) -> None:
        """Every vertex has a normal, UV and (for branches) color."""
        mesh = generate(TreeSettings.deciduous(), 5)
        n = mesh.branches.vertex_count
        assert len(mesh.branches.normals) == n
        assert len(mesh.branches.uvs) == n
        assert len(mesh.branches.colors) == n
        assert len(mesh.leaves.normals) == mesh.leaves.vertex_count
        assert mesh.leaves.colors == []

    def test_unit_normals(self) -> None:
        """Branch normals are unit length."""
        mesh = generate(uniform_settings(), 11)
        lengths = np.linalg.norm(np.asarray(mesh.branches.normals), axis=1)
        assert np.allclose(lengths, 1.0)

    @pytest.mark.parametrize(
        "settings, expected",
        [
            (TreeSettings.deciduous(), 4),
            (TreeSettings.evergreen(), 3),
            (TreeSettings.bare_trunk(), 1),
        ],
    )
    def test_recursion_bound(self, settings: TreeSettings, expected: int) -> None:
        """Frame depth never exceeds levels + 1."""
        stats = GenerationStats()
        grow_tree(settings, make_draw_source(0), stats=stats)
        assert stats.max_depth <= settings.branch.levels + 1
        assert stats.max_depth == expected

    def test_evergreen_tips_converge(self) -> None:
        """Every evergreen branch ends in a collapsed tip ring."""
        stats = GenerationStats()
        mesh = grow_tree(uniform_settings(TreeType.EVERGREEN), make_draw_source(4), stats=stats)
        positions = rings(mesh.branches.positions, 6)
        spread = np.linalg.norm(positions - positions[:, :1], axis=2).max(axis=1)
        collapsed = int(np.sum(spread < 1e-6))
        assert collapsed >= stats.branches
        assert collapsed < len(positions)

    def test_deciduous_tips_converge(self) -> None:
        """Each deciduous branch at the deepest tier ends in a collapsed ring."""
        stats = GenerationStats()
        mesh = grow_tree(uniform_settings(), make_draw_source(4), stats=stats)
        positions = rings(mesh.branches.positions, 6)
        spread = np.linalg.norm(positions - positions[:, :1], axis=2).max(axis=1)
        collapsed = int(np.sum(spread < 1e-6))
        # Last trunk piece, two level-2 branches off the middle piece and
        # two off each of the three level-1 branches
        assert stats.leaf_clusters == 1 + 2 + 3 * 2
        assert collapsed == stats.leaf_clusters


class TestBareTrunk:
    """Tests for a single trunk without branch tiers."""

    def test_counts(self) -> None:
        """One branch of (sections + 1) rings of (segments + 1) vertices."""
        settings = TreeSettings.bare_trunk()
        stats = GenerationStats()
        mesh = grow_tree(settings, make_draw_source(0), stats=stats)
        sections = settings.branch.sections[0]
        segments = settings.branch.segments[0]
        assert mesh.branches.vertex_count == (sections + 1) * (segments + 1)
        assert mesh.branches.triangle_count == sections * segments * 2
        assert stats.branches == 1
        assert stats.continuations == 0
        assert stats.leaf_clusters == 1

    def test_leaves_only_at_tip(self) -> None:
        """The single leaf cluster grows from the trunk tip."""
        settings = TreeSettings.bare_trunk()
        mesh = generate(settings, 0)
        assert mesh.leaves.vertex_count == 8  # one double billboard

        stride = settings.branch.segments[0] + 1
        tip_ring = rings(mesh.branches.positions, stride)[-1]
        tip_center = tip_ring[:-1].mean(axis=0)
        for quad in range(2):
            stem = (
                np.array(mesh.leaves.positions[4 * quad + 1])
                + np.array(mesh.leaves.positions[4 * quad + 2])
            ) / 2
            assert np.allclose(stem, tip_center, atol=1e-6)

    def test_tip_radius(self) -> None:
        """The last ring collapses to the minimum tip radius."""
        settings = TreeSettings.bare_trunk()
        mesh = generate(settings, 0)
        stride = settings.branch.segments[0] + 1
        tip_ring = rings(mesh.branches.positions, stride)[-1]
        center = tip_ring[:-1].mean(axis=0)
        radii = np.linalg.norm(tip_ring - center, axis=1)
        assert np.allclose(radii, MIN_TIP_RADIUS, atol=1e-9)
        assert np.all(radii > 0)

    def test_alternating_v(self) -> None:
        """V alternates 0, 1, 0, ... ring by ring."""
        settings = TreeSettings.bare_trunk()
        mesh = generate(settings, 0)
        stride = settings.branch.segments[0] + 1
        uvs = np.asarray(mesh.branches.uvs).reshape(-1, stride, 2)
        for ring, ring_uvs in enumerate(uvs):
            assert np.all(ring_uvs[:, 1] == ring % 2)

    def test_u_increases_around_ring(self) -> None:
        """U runs from 0 to 1 around each ring."""
        settings = TreeSettings.bare_trunk()
        mesh = generate(settings, 0)
        segments = settings.branch.segments[0]
        us = [uv[0] for uv in mesh.branches.uvs[: segments + 1]]
        assert np.allclose(us, [j / segments for j in range(segments)] + [1.0])

    def test_straight_without_gnarl(self) -> None:
        """With centered draws the trunk grows straight up to its length."""
        settings = TreeSettings.bare_trunk()
        mesh = grow_tree(settings, SequenceDrawSource([0.5]))
        stride = settings.branch.segments[0] + 1
        centers = rings(mesh.branches.positions, stride)[:, :-1].mean(axis=1)
        assert np.allclose(centers[:, [0, 2]], 0.0, atol=1e-9)
        assert np.isclose(centers[-1, 1], settings.branch.length[0])

    def test_single_color(self) -> None:
        """All trunk vertices carry the level-0 debug color."""
        mesh = generate(TreeSettings.bare_trunk(), 0)
        assert set(mesh.branches.colors) == {LEVEL_COLORS[0]}


class TestDeciduousTrunk:
    """Tests for the segmented deciduous trunk."""

    def test_length_factors_sum_to_one(self) -> None:
        """Trunk pieces share the full length, lower pieces getting more."""
        settings = segmented_trunk_settings()
        state = trunk_state(settings)
        factors = [
            section_length_factor(settings, dataclasses.replace(state, recursion_count=k))
            for k in range(3)
        ]
        assert np.allclose(factors, [3 / 6, 2 / 6, 1 / 6])
        assert np.isclose(sum(factors), 1.0)

    def test_pieces_reach_full_height(self) -> None:
        """Three pieces stack up to the configured trunk length."""
        settings = segmented_trunk_settings()
        stats = GenerationStats()
        mesh = grow_tree(settings, SequenceDrawSource([0.5]), stats=stats)
        assert stats.branches == 3
        assert stats.continuations == 2
        assert stats.leaf_clusters == 1
        assert mesh.branches.vertex_count == 3 * 5 * 5

        centers = rings(mesh.branches.positions, 5)[:, :-1].mean(axis=1)
        # Last ring of each piece: 6, 4 and 2 units tall
        assert np.isclose(centers[4, 1], 6.0)
        assert np.isclose(centers[9, 1], 10.0)
        assert np.isclose(centers[14, 1], 12.0)

    def test_taper_spread_over_pieces(self) -> None:
        """The whole trunk reaches the taper, not each piece."""
        settings = segmented_trunk_settings()
        mesh = grow_tree(settings, SequenceDrawSource([0.5]))
        positions = mesh.branches.positions
        # Vertex 0 of a ring lies on local +X at the ring radius
        assert np.isclose(positions[20][0], 0.4 ** (1 / 3))
        assert np.isclose(positions[25][0], 0.4 ** (1 / 3))
        assert np.isclose(positions[45][0], 0.4 ** (2 / 3))
        assert np.isclose(positions[70][0], MIN_TIP_RADIUS)

    def test_taper_multiplier_by_type(self) -> None:
        """Evergreen tapers per branch, deciduous trunks across all pieces."""
        deciduous = segmented_trunk_settings()
        evergreen = deciduous.with_changes(tree_type=TreeType.EVERGREEN)
        state = trunk_state(deciduous)
        assert np.isclose(taper_multiplier(deciduous, state) ** 12, 0.4)
        assert np.isclose(taper_multiplier(evergreen, state) ** 4, 0.4)

    def test_colors_by_recursion_count(self) -> None:
        """Each trunk piece gets its recursion count's debug color."""
        mesh = grow_tree(segmented_trunk_settings(), SequenceDrawSource([0.5]))
        assert mesh.branches.colors[0] == LEVEL_COLORS[0]
        assert mesh.branches.colors[25] == LEVEL_COLORS[1]
        assert mesh.branches.colors[50] == LEVEL_COLORS[2]

    def test_leaves_at_final_piece(self) -> None:
        """Only the final trunk piece grows leaves."""
        mesh = grow_tree(segmented_trunk_settings(), SequenceDrawSource([0.5]))
        assert mesh.leaves.vertex_count == 8
        stem = (np.array(mesh.leaves.positions[1]) + np.array(mesh.leaves.positions[2])) / 2
        assert np.allclose(stem, [0.0, 12.0, 0.0], atol=1e-9)


class TestForce:
    """Tests for the directional force."""

    def force_settings(self, cutoff: float) -> TreeSettings:
        base = TreeSettings.bare_trunk()
        branch = BranchParams(
            levels=0,
            angle=(0.0,),
            children=(0,),
            gnarliness=(0.0,),
            length=(10.0,),
            radius_factor=(1.0,),
            sections=(8,),
            segments=(6,),
            start=(0.0,),
            taper=(0.7,),
            twist=(0.0,),
            force=BranchForce(direction=(1.0, 0.0, 0.0), strength=1.0, radius_cutoff=cutoff),
        )
        return base.with_changes(branch=branch)

    def test_force_bends_thin_branches(self) -> None:
        """A sideways force pulls the branch toward its direction."""
        mesh = grow_tree(self.force_settings(cutoff=100.0), SequenceDrawSource([0.5]))
        top = rings(mesh.branches.positions, 7)[-1, :-1].mean(axis=0)
        assert top[0] > 1.0

    def test_force_ignored_above_cutoff(self) -> None:
        """Branches thicker than the cutoff are not affected."""
        mesh = grow_tree(self.force_settings(cutoff=0.01), SequenceDrawSource([0.5]))
        top = rings(mesh.branches.positions, 7)[-1, :-1].mean(axis=0)
        assert np.isclose(top[0], 0.0, atol=1e-9)


class TestZeroChildren:
    """Tests for tiers that spawn no children."""

    def test_no_children_no_leaves(self) -> None:
        """A non-terminal branch without children simply stops."""
        settings = TreeSettings(
            tree_type=TreeType.EVERGREEN,
            branch=BranchParams(
                levels=2,
                angle=(0.0, 80.0, 45.0),
                children=(4, 0, 0),
                gnarliness=(0.1, 0.1, 0.1),
                length=(10.0, 4.0, 2.0),
                radius_factor=(1.0, 0.5, 0.5),
                sections=(6, 3, 2),
                segments=(6, 4, 3),
                start=(0.0, 0.3, 0.3),
                taper=(0.6, 0.6, 0.6),
                twist=(0.0, 0.0, 0.0),
            ),
        )
        stats = GenerationStats()
        mesh = grow_tree(settings, SequenceDrawSource([0.25, 0.75]), stats=stats)
        assert stats.branches == 5
        assert stats.leaf_clusters == 0
        assert mesh.leaves.vertex_count == 0

    def test_zero_leaf_count(self) -> None:
        """Terminal branches may carry no leaves at all."""
        settings = TreeSettings.bare_trunk().with_changes(
            leaves=LeafParams(count=0, billboard=LeafBillboard.SINGLE)
        )
        mesh = generate(settings, 0)
        assert mesh.leaves.vertex_count == 0
        assert mesh.branches.vertex_count > 0


class TestOverflow:
    """Tests for index overflow."""

    def overflow_settings(self) -> TreeSettings:
        return TreeSettings(
            branch=BranchParams(
                levels=1,
                angle=(0.0, 45.0),
                children=(2, 0),
                gnarliness=(0.1, 0.1),
                length=(10.0, 5.0),
                radius_factor=(1.0, 0.5),
                sections=(200, 200),
                segments=(200, 200),
                start=(0.0, 0.5),
                taper=(0.5, 0.5),
                twist=(0.0, 0.0),
            ),
        )

    def test_u16_overflow_raises(self) -> None:
        """Too many vertices for 16-bit indices is an error, not a wrap."""
        with pytest.raises(GeometryOverflowError) as excinfo:
            generate(self.overflow_settings(), 0, IndexWidth.U16)
        assert excinfo.value.index_width is IndexWidth.U16
        assert excinfo.value.vertex_count > 65536

    def test_u32_fits(self) -> None:
        """The same tree fits in 32-bit indices."""
        mesh = generate(self.overflow_settings(), 0, IndexWidth.U32)
        assert mesh.branches.vertex_count > 65536
        assert max(mesh.branches.indices) < mesh.branches.vertex_count
        assert mesh.branches.to_arrays().indices.dtype == np.uint32

    def test_overflow_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        """Overflow is logged before it propagates."""
        caplog.set_level(logging.WARNING, logger="arbormesh.engine")
        with pytest.raises(GeometryOverflowError):
            generate(self.overflow_settings(), 0)
        assert any("aborted" in r.getMessage() for r in caplog.records)


class TestLogging:
    """Tests for generation logging."""

    def test_summary_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        """A summary line is logged per generation."""
        caplog.set_level(logging.INFO, logger="arbormesh.engine")
        generate(TreeSettings.bare_trunk(), 0)
        assert any("Generated deciduous tree" in r.getMessage() for r in caplog.records)
