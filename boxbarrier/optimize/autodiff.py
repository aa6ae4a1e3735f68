"""Reverse-mode gradients of objectives written against torch tensors."""

from __future__ import annotations

from typing import Callable

import numpy as np
import torch

TorchObjective = Callable[[torch.Tensor], torch.Tensor]


def as_float_tensor(x: np.ndarray, requires_grad: bool = False) -> torch.Tensor:
    """Copy ``x`` into a float64 CPU tensor."""
    return torch.tensor(np.asarray(x, dtype=float), dtype=torch.float64, requires_grad=requires_grad)


def torch_value_and_grad(fun: TorchObjective, x: np.ndarray) -> tuple[float, np.ndarray]:
    """
    Evaluate ``fun`` and its gradient with ``torch.autograd``.

    Parameters
    ----------
    fun:
        Callable mapping a float64 tensor to a scalar tensor.
    x:
        Evaluation point.

    Returns
    -------
    tuple[float, np.ndarray]
        Objective value and gradient, both detached into NumPy.

    Raises
    ------
    ValueError
        If ``fun`` does not return a scalar.
    """
    xt = as_float_tensor(x, requires_grad=True)
    value = fun(xt)
    if not isinstance(value, torch.Tensor):
        value = torch.as_tensor(value, dtype=torch.float64)
    if value.numel() != 1:
        raise ValueError(f"Objective must return a scalar, got shape {tuple(value.shape)}.")
    if not value.requires_grad:
        # Constant objective: autograd has no graph to walk.
        return float(value.item()), np.zeros_like(np.asarray(x, dtype=float))
    (grad,) = torch.autograd.grad(value, xt)
    return float(value.item()), grad.detach().cpu().numpy()


def torch_value(fun: TorchObjective, x: np.ndarray) -> float:
    """Evaluate ``fun`` without recording a graph."""
    with torch.no_grad():
        value = fun(as_float_tensor(x))
    return float(value.item()) if isinstance(value, torch.Tensor) else float(value)


def torch_hessian(fun: TorchObjective, x: np.ndarray) -> np.ndarray:
    """Dense Hessian of ``fun`` via ``torch.autograd.functional.hessian``."""
    hess = torch.autograd.functional.hessian(fun, as_float_tensor(x))
    n = np.asarray(x).size
    return hess.detach().cpu().numpy().reshape(n, n)


__all__ = ["as_float_tensor", "torch_hessian", "torch_value", "torch_value_and_grad"]
