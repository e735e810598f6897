"""Geostax: Riemannian manifolds and Lie groups in Jax.

## Features

### Dispatch
- Capability traits with metric-aware forwarding to decorated and embedding manifolds
- `*_into` variants writing into caller-owned NumPy buffers

### Lie groups
- Orthogonal and special orthogonal groups with closed-form exp/log for n = 2, 3, 4
- Translation groups, group actions and semidirect products (special Euclidean group)

### Manifolds
- Rotations and orthogonal matrices
- Hyperbolic space (hyperboloid, Poincaré ball and half-space models)
- Fixed-rank matrices in SVD form
- Cholesky space
- Positive numbers, vectors and matrices
- Euclidean space and product manifolds
"""

from geostax.config import apply_jax_config, get_config

apply_jax_config(get_config())

__version__ = "0.1.0"
__license__ = "MIT"
