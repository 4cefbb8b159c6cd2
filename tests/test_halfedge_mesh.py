"""
Tests for half-edge connectivity and per-element geometry.
"""

import os
import sys
import numpy as np
import pytest
import trimesh

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from data_types import HalfEdgeMesh


def test_counts_and_euler_characteristic(tetrahedron, sphere, torus):
    assert (tetrahedron.n_verts, tetrahedron.n_edges, tetrahedron.n_faces) == (4, 6, 4)
    assert tetrahedron.euler_characteristic == 2
    assert sphere.euler_characteristic == 2
    assert sphere.genus == 0
    assert torus.euler_characteristic == 0
    assert torus.genus == 1
    assert torus.n_halfedges == 2 * torus.n_edges


def test_twin_and_next_are_consistent(sphere):
    h = np.arange(sphere.n_halfedges)
    twin = sphere.he_twin
    assert np.all(twin[twin] == h)
    assert np.all(twin != h)
    assert np.all(sphere.he_origin[twin] == sphere.he_dest)
    assert np.all(sphere.he_edge[twin] == sphere.he_edge)
    assert np.all(sphere.he_next[sphere.he_next[sphere.he_next]] == h)
    assert np.all(sphere.he_face[sphere.he_next] == sphere.he_face)

    assert sphere.twin(5) == twin[5]
    assert sphere.next(5) == sphere.he_next[5]


def test_edge_signs(sphere):
    signs = sphere.edge_signs
    assert np.all(signs[sphere.he_twin] == -signs)

    canonical = sphere.edge_halfedge
    assert np.all(signs[canonical] == 1.0)
    assert np.all(sphere.he_origin[canonical] == sphere.edges[:, 0])
    assert np.all(sphere.he_dest[canonical] == sphere.edges[:, 1])
    assert sphere.edge_sign(int(canonical[0])) == 1.0
    assert sphere.edge_sign(int(sphere.he_twin[canonical[0]])) == -1.0


def test_vertex_halfedges_leave_vertex(sphere):
    for v in [0, 7, sphere.n_verts - 1]:
        hs = sphere.vertex_halfedges(v)
        assert len(hs) >= 3
        assert np.all(sphere.he_origin[hs] == v)


def test_face_halfedges(tetrahedron):
    hs = tetrahedron.face_halfedges(2)
    assert list(hs) == [6, 7, 8]
    assert list(tetrahedron.he_origin[hs]) == list(tetrahedron.faces[2])


def test_angle_defects_sum_to_gauss_bonnet(sphere, torus, tetrahedron):
    assert np.isclose(sphere.angle_defects.sum(), 4 * np.pi)
    assert np.isclose(torus.angle_defects.sum(), 0.0, atol=1e-9)
    # Three equilateral corners meet at each vertex of a regular tetrahedron
    assert np.allclose(tetrahedron.angle_defects, np.pi)
    assert np.isclose(tetrahedron.angle_defect(0), np.pi)


def test_dual_areas_partition_surface(sphere):
    assert np.isclose(sphere.barycentric_dual_areas.sum(), sphere.total_area())
    assert np.isclose(sphere.barycentric_dual_area(3), sphere.barycentric_dual_areas[3])


def test_orthonormal_basis_is_tangent(sphere):
    for f in [0, 10, sphere.n_faces - 1]:
        e1, e2 = sphere.orthonormal_basis(f)
        n = sphere.face_normals[f]
        assert np.isclose(np.linalg.norm(e1), 1.0)
        assert np.isclose(np.linalg.norm(e2), 1.0)
        assert np.isclose(np.dot(e1, e2), 0.0)
        assert np.isclose(np.dot(e1, n), 0.0)
        assert np.allclose(np.cross(e1, e2), n)


def test_cotans_of_equilateral_faces(tetrahedron):
    assert np.allclose(tetrahedron.cotans, 1.0 / np.sqrt(3.0))
    assert np.isclose(tetrahedron.cotan(0), 1.0 / np.sqrt(3.0))
    assert np.allclose(tetrahedron.edge_cotan_weights, 1.0 / np.sqrt(3.0))


def test_torus_has_positive_cotan_weights(torus):
    assert np.all(torus.edge_cotan_weights > 0)


def test_from_trimesh_welds_duplicate_vertices():
    box = trimesh.creation.box()
    # Unmerged copy with three vertices per face
    soup = trimesh.Trimesh(box.vertices[box.faces].reshape(-1, 3),
                           np.arange(3 * len(box.faces)).reshape(-1, 3),
                           process=False)
    mesh = HalfEdgeMesh.from_trimesh(soup)
    assert mesh.n_verts == 8
    assert mesh.euler_characteristic == 2

    back = mesh.to_trimesh()
    assert back.vertices.shape == (8, 3)
    assert np.isclose(back.area, mesh.total_area())


def test_boundary_mesh_rejected():
    vertices = np.array([[0, 0, 0], [1, 0, 0], [0, 1, 0]], dtype=float)
    faces = np.array([[0, 1, 2]])
    with pytest.raises(ValueError, match="closed 2-manifold"):
        HalfEdgeMesh(vertices, faces)


def test_inconsistent_orientation_rejected(tetrahedron):
    faces = tetrahedron.faces.copy()
    faces[0] = faces[0][::-1]
    with pytest.raises(ValueError, match="oriented"):
        HalfEdgeMesh(tetrahedron.vertices, faces)


def test_unreferenced_vertex_rejected(tetrahedron):
    vertices = np.vstack([tetrahedron.vertices, [[5.0, 5.0, 5.0]]])
    with pytest.raises(ValueError, match="unreferenced"):
        HalfEdgeMesh(vertices, tetrahedron.faces)


def test_degenerate_face_rejected(tetrahedron):
    vertices = tetrahedron.vertices.copy()
    # Move vertex 3 onto the midpoint of edge (0, 1)
    vertices[3] = 0.5 * (vertices[0] + vertices[1])
    with pytest.raises(ValueError, match="degenerate"):
        HalfEdgeMesh(vertices, tetrahedron.faces)


def test_bad_shapes_rejected():
    with pytest.raises(ValueError):
        HalfEdgeMesh(np.zeros((4, 2)), np.array([[0, 1, 2]]))
    with pytest.raises(ValueError):
        HalfEdgeMesh(np.zeros((4, 3)), np.array([[0, 1, 2, 3]]))
    with pytest.raises(ValueError, match="out of range"):
        HalfEdgeMesh(np.zeros((3, 3)), np.array([[0, 1, 5]]))
