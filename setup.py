from setuptools import setup, find_packages

setup(
    name="grindstone",
    version="0.1.0",
    packages=find_packages(),
    py_modules=['main'],
    install_requires=[
        "torch>=2.0.0",
        "rich>=13.0.0",
        "tensorboard>=2.12.0",
    ],
    extras_require={
        'test': [
            "pytest>=7.0.0",
            "numpy>=1.24.0",
            "scipy>=1.10.0",
        ],
    },
    entry_points={
        'console_scripts': [
            'grindstone-train=grindstone.rl.actor_critic.train:main',
        ],
    },
)
