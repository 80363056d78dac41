from setuptools import find_packages, setup

package_name = "mc_rcon_tui"

setup(
    name=package_name,
    version="1.0.0",
    packages=find_packages(exclude=["test"]),
    install_requires=[
        "PyYAML",
        "mcrcon",
        "mcstatus>=11",
    ],
    extras_require={
        "test": ["pytest", "pydocstyle"],
    },
    python_requires=">=3.8",
    zip_safe=True,
    maintainer="Nigel_H-S",
    maintainer_email="1388693+DingoOz@users.noreply.github.com",
    description="A curses-based RCON admin console for Minecraft servers",
    license="MIT",
    tests_require=["pytest"],
    entry_points={
        "console_scripts": [
            "mc_admin = mc_rcon_tui.admin_tui:main",
        ],
    },
)
