from setuptools import setup, find_packages

setup(
    name='homotrack',  # adaptive-step homotopy path tracking
    version='0.1.0',
    description='Fixed-precision predictor-corrector path tracking in PyTorch',
    package_dir={'': 'src'},
    packages=find_packages(where='src'),
    python_requires='>=3.10',
    install_requires=[
        'torch>=2.0',
        'numpy>=1.23',
        'scipy>=1.12',                 # GMRES linear solves (rtol=)
    ],
    extras_require={
        'test': [
            'pytest>=7.0',
        ],
    },
)
