from setuptools import setup, find_packages

setup(
    name="trivial-connections",
    version="0.1.0",
    description="Vector field design with trivial connections and discrete Hodge decomposition on triangle meshes",
    author="",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["field_design"],
    include_package_data=True,
    python_requires=">=3.9",
    install_requires=[
        "numpy",
        "scipy",
        "trimesh",
        "tqdm",
        "networkx",
    ],
    extras_require={
        "test": ["pytest"],
    },
)
