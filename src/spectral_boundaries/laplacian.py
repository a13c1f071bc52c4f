from __future__ import annotations

import numpy as np
from scipy.sparse.linalg import eigsh

# Added to every degree before D^{-1/2} so isolated bins do not divide by zero.
LAPLACIAN_EPSILON = 2e-16

# Windows up to this many bins go through the dense solver.
DENSE_EIGEN_LIMIT = 512


def normalized_affinity(W: np.ndarray, *, epsilon: float = LAPLACIAN_EPSILON) -> np.ndarray:
    """Compute the symmetric normalized operator: M = D^{-1/2} |W| D^{-1/2}."""
    A = np.abs(np.asarray(W, dtype=np.float64))
    d = A.sum(axis=1)
    inv_sqrt = 1.0 / np.sqrt(d + float(epsilon))
    return inv_sqrt[:, None] * A * inv_sqrt[None, :]


def leading_eigenvectors(
    M: np.ndarray,
    k: int = 2,
    *,
    tol: float = 1e-10,
    dense_limit: int = DENSE_EIGEN_LIMIT,
) -> tuple[np.ndarray, np.ndarray]:
    """Compute the eigenpairs of the k algebraically largest eigenvalues.

    Args:
        M: (n x n) symmetric matrix
        k: number of eigenpairs to return
        dense_limit: largest n solved densely; bigger windows use eigsh

    Returns:
        evals: (k,) descending; ties keep the solver's ascending order
        evecs: (n, k)
    """

    if k <= 0:
        raise ValueError("k must be positive")

    M = np.asarray(M, dtype=np.float64)
    if M.ndim != 2 or M.shape[0] != M.shape[1]:
        raise ValueError("M must be square")
    n = M.shape[0]
    if k > n:
        raise ValueError(f"Cannot take {k} eigenvectors of a {n} x {n} matrix")

    if n <= dense_limit or k >= n - 1:
        w, v = np.linalg.eigh(M)
    else:
        # Seeded start vector keeps repeated runs identical.
        v0 = np.random.default_rng(0).standard_normal(n)
        w, v = eigsh(M, k=k, which="LA", tol=float(tol), v0=v0)

    idx = np.argsort(-w, kind="stable")[:k]
    return w[idx], v[:, idx]


def normalize_eigenvectors(evecs: np.ndarray) -> np.ndarray:
    """Scale each column to norm sqrt(n) and make its first entry non-negative."""
    V = np.array(evecs, dtype=np.float64)
    n = V.shape[0]
    with np.errstate(divide="ignore", invalid="ignore"):
        V = V / np.linalg.norm(V, axis=0)[None, :] * np.sqrt(n)
    flip = V[0, :] < 0
    V[:, flip] *= -1.0
    return V


def unit_circle_projection(embedding: np.ndarray) -> np.ndarray:
    """Divide each row by its own Euclidean norm; zero rows become NaN."""
    E = np.asarray(embedding, dtype=np.float64)
    with np.errstate(divide="ignore", invalid="ignore"):
        return E / np.linalg.norm(E, axis=1)[:, None]
