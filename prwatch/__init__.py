"""prwatch: terminal dashboard of pull requests waiting on you."""
