import argparse
import logging
import os
import sys
import trimesh
import numpy as np

from data_types import HalfEdgeMesh
from connections import TrivialConnection, UnreachedFacesError, integrate_face_angles, face_vectors_from_angles, vertex_singularity_indices
from decomposition import random_one_form
from settings import DEFAULT_SEED, setup_logging
from solvers import LinearSolveError

logger = logging.getLogger("field_design")


def parse_singularity(text):
    """Parse a VID:INDEX pair such as 12:1 or 40:-0.5."""
    try:
        vid, index = text.split(":")
        return int(vid), float(index)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected VID:INDEX, got {text!r}")


def load_mesh_cli():
    """Parse command-line arguments and load the input mesh."""
    parser = argparse.ArgumentParser(description='Design a smooth face vector field with prescribed singularities.')
    parser.add_argument('load_filepath', type=str, help='Path to a closed triangle mesh (any format trimesh reads)')
    parser.add_argument('save_filepath', type=str, help='Path of the .npz file to write')
    parser.add_argument('--singularity', '-s', type=parse_singularity, action='append', default=[],
                        metavar='VID:INDEX', help='Singularity index at a vertex; may be repeated')
    parser.add_argument('--decompose', action='store_true',
                        help='Also Hodge-decompose a random 1-form and save its components')
    parser.add_argument('--seed', type=int, default=DEFAULT_SEED, help='Seed for the random 1-form')
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable debug logging and progress bars')

    args = parser.parse_args()

    if not os.path.isfile(args.load_filepath):
        print(f"Error: The file {args.load_filepath} does not exist.")
        sys.exit(1)

    save_dir = os.path.dirname(os.path.abspath(args.save_filepath))
    if not os.path.isdir(save_dir):
        print(f"Error: The directory {save_dir} does not exist.")
        sys.exit(1)

    try:
        mesh = trimesh.load(args.load_filepath, force='mesh')
    except Exception as e:
        print(f"Error loading the mesh file: {e}")
        sys.exit(1)

    try:
        mesh = HalfEdgeMesh.from_trimesh(mesh)
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)

    return mesh, args


def main():
    mesh, args = load_mesh_cli()
    setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    logger.info(
        "Loaded mesh: %d vertices, %d faces, Euler characteristic %d (genus %d)",
        mesh.n_verts, mesh.n_faces, mesh.euler_characteristic, mesh.genus
    )

    singularities = np.zeros(mesh.n_verts)
    for vid, index in args.singularity:
        if not 0 <= vid < mesh.n_verts:
            print(f"Error: Vertex {vid} is out of range [0, {mesh.n_verts}).")
            sys.exit(1)
        singularities[vid] += index

    try:
        solver = TrivialConnection(mesh, verbose=args.verbose)
    except (ValueError, LinearSolveError) as e:
        print(f"Error: {e}")
        sys.exit(1)

    if not solver.satisfies_gauss_bonnet(singularities):
        print(
            f"Error: Singularity indices sum to {singularities.sum():g}, "
            f"but they must sum to the Euler characteristic {mesh.euler_characteristic}."
        )
        sys.exit(1)

    try:
        connection = solver.compute_connections(singularities)
    except LinearSolveError as e:
        print(f"Error: {e}")
        sys.exit(1)

    angles, unreached = integrate_face_angles(mesh, connection, verbose=args.verbose)
    if len(unreached):
        print(f"Error: {UnreachedFacesError(unreached)}")
        sys.exit(1)

    face_vectors = face_vectors_from_angles(mesh, angles)

    indices = vertex_singularity_indices(mesh, angles)
    found = np.nonzero(np.abs(indices) > 0.5)[0]
    logger.info("Field has %d singular vertices: %s", len(found),
                {int(v): round(float(indices[v]), 3) for v in found[:20]})

    arrays = {
        'face_vectors': face_vectors,
        'connection': connection,
        'angles': angles,
        'singularities': singularities,
    }

    if args.decompose:
        sample = random_one_form(mesh, seed=args.seed, hodge=solver.hodge, harmonic_bases=solver.bases)
        try:
            exact, coexact, harmonic = solver.hodge.decompose(sample.omega)
        except LinearSolveError as e:
            print(f"Error: {e}")
            sys.exit(1)
        logger.info(
            "Decomposition errors: exact %.3e, coexact %.3e, harmonic %.3e",
            np.abs(exact - sample.exact).max(),
            np.abs(coexact - sample.coexact).max(),
            np.abs(harmonic - sample.harmonic).max(),
        )
        arrays.update(omega=sample.omega, exact=exact, coexact=coexact, harmonic=harmonic)

    np.savez(args.save_filepath, **arrays)
    logger.info("Saved %s", args.save_filepath)


if __name__ == "__main__":
    main()
