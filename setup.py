from setuptools import setup, find_packages

setup(
    name='easy-openyurt',
    version='0.2.0',
    packages=find_packages(exclude=['easy_openyurt.tests', 'easy_openyurt.tests.*']),
    include_package_data=True,
    install_requires=[
        'typer[all]',
        'pyyaml',
        'python-dotenv',
        'jsonschema',
        'tenacity',
    ],
    extras_require={
        'test': [
            'pytest',
        ],
    },
    entry_points={
        'console_scripts': [
            'easy-openyurt=easy_openyurt.cli:app'
        ]
    },
    description='Provision Kubernetes with kubeadm and layer the OpenYurt edge control plane on top',
    classifiers=[
        'Programming Language :: Python :: 3',
        'Operating System :: POSIX :: Linux',
    ],
    python_requires='>=3.8',
)
