"""
Shared test meshes.
"""

import os
import sys
import numpy as np
import pytest
import trimesh

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from data_types import HalfEdgeMesh


def create_tetrahedron():
    """Regular tetrahedron with outward-facing triangles."""
    vertices = np.array([
        [1, 1, 1],
        [1, -1, -1],
        [-1, 1, -1],
        [-1, -1, 1]
    ], dtype=float)

    faces = np.array([
        [0, 1, 2],
        [0, 3, 1],
        [0, 2, 3],
        [1, 3, 2]
    ], dtype=int)

    return HalfEdgeMesh(vertices, faces)


def create_torus(n_major=24, n_minor=12, major_radius=2.0, minor_radius=1.0):
    """
    Torus whose rings are staggered by half a step, so every triangle is acute.

    n_minor must be even for the stagger to close up.
    """
    assert n_minor % 2 == 0
    vertices = []
    for j in range(n_minor):
        v = 2 * np.pi * j / n_minor
        for i in range(n_major):
            u = 2 * np.pi * (i + 0.5 * (j % 2)) / n_major
            ring = major_radius + minor_radius * np.cos(v)
            vertices.append([ring * np.cos(u), ring * np.sin(u), minor_radius * np.sin(v)])

    def vid(i, j):
        return (j % n_minor) * n_major + (i % n_major)

    faces = []
    for j in range(n_minor):
        for i in range(n_major):
            if j % 2 == 0:
                # upper vertex i sits between lower vertices i and i + 1
                faces.append([vid(i, j), vid(i + 1, j), vid(i, j + 1)])
                faces.append([vid(i + 1, j), vid(i + 1, j + 1), vid(i, j + 1)])
            else:
                # upper vertex i + 1 sits between lower vertices i and i + 1
                faces.append([vid(i, j), vid(i + 1, j), vid(i + 1, j + 1)])
                faces.append([vid(i, j), vid(i + 1, j + 1), vid(i, j + 1)])

    return HalfEdgeMesh(np.array(vertices), np.array(faces))


def create_double_torus(offset=7.0):
    """
    Genus-two surface: two tori side by side, with one facing triangle cut out of
    each and the holes joined by a six-triangle tube.
    """
    first = create_torus()
    second = create_torus()
    n = len(first.vertices)

    # The first torus is cut on its outer side, the second on the side facing it
    cut_first = np.argmax(first.vertices[first.faces].mean(axis=1)[:, 0])
    cut_second = np.argmin(second.vertices[second.faces].mean(axis=1)[:, 0])
    a, b, c = first.faces[cut_first]
    p, q, r = second.faces[cut_second] + n

    vertices = np.vstack([first.vertices, second.vertices + [offset, 0.0, 0.0]])
    keep_first = np.arange(len(first.faces)) != cut_first
    keep_second = np.arange(len(second.faces)) != cut_second
    tube = [[a, b, r], [a, r, p], [b, c, q], [b, q, r], [c, a, p], [c, p, q]]

    faces = np.vstack([first.faces[keep_first], second.faces[keep_second] + n, tube])
    return HalfEdgeMesh(vertices, faces)


def create_sphere(subdivisions=2):
    return HalfEdgeMesh.from_trimesh(trimesh.creation.icosphere(subdivisions=subdivisions))


@pytest.fixture(scope="module")
def tetrahedron():
    return create_tetrahedron()


@pytest.fixture(scope="module")
def sphere():
    return create_sphere()


@pytest.fixture(scope="module")
def torus():
    return create_torus()


@pytest.fixture(scope="module")
def double_torus():
    return create_double_torus()
