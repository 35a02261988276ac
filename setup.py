from setuptools import setup, find_packages

def parse_requirements(requirements):
    with open(requirements) as f:
        return [l.strip('\n') for l in f if l.strip('\n') and not l.startswith('#')]

requirements = parse_requirements("requirements.txt")

setup(
    name='sqlrepository',
    version='0.1.0',
    install_requires=requirements,
    package_dir={'': 'src'},
    packages=find_packages(where='src'),
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    python_requires='>=3.10',
)
