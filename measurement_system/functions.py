"""
╔══════════════════════════════════════════════════════════════════════╗
║  Analytic function library                                           ║
║                                                                      ║
║  Each function evaluates its plain-number value and closed-form      ║
║  derivative(s) at the nominal value(s), then hands                   ║
║  (value, derivatives, operands) to the propagation engine.           ║
║                                                                      ║
║  Arguments may be Measurements or plain real numbers.  Domain        ║
║  violations follow IEEE-754 (NaN / ±inf), never exceptions.          ║
╚══════════════════════════════════════════════════════════════════════╝
"""

import functools
import math
import numbers

import numpy as np
from scipy import special

from .engine import combine, propagate_complex
from .measurement import Measurement

_SQRT_PI = np.sqrt(np.pi)
_DEG = np.pi / 180.0


def _ieee(func):
    """Evaluate ``func`` with numpy floating-point warnings silenced."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        with np.errstate(all="ignore"):
            return func(*args, **kwargs)
    return wrapper


def _nominal(x):
    if isinstance(x, Measurement):
        return np.float64(x.val)
    if isinstance(x, numbers.Real):
        return np.float64(x)
    raise TypeError(f"Expected a Measurement or a real number, got {type(x).__name__}")


def _order(nu):
    if isinstance(nu, Measurement):
        raise TypeError("The order of a special function must be a plain number")
    return nu


def _unary(value, derivative, x):
    return combine(value, (derivative,), (x,))


# ═══════════════════════════════════════════════════════════════════════
# §1  ARITHMETIC
# ═══════════════════════════════════════════════════════════════════════

@_ieee
def add(a, b):
    return combine(_nominal(a) + _nominal(b), (1.0, 1.0), (a, b))


@_ieee
def sub(a, b):
    return combine(_nominal(a) - _nominal(b), (1.0, -1.0), (a, b))


@_ieee
def mul(a, b):
    va, vb = _nominal(a), _nominal(b)
    return combine(va * vb, (vb, va), (a, b))


@_ieee
def truediv(a, b):
    va, vb = _nominal(a), _nominal(b)
    val = va / vb
    return combine(val, (1.0 / vb, -val / vb), (a, b))


@_ieee
def floordiv(a, b):
    """Floored quotient; piecewise constant, so both derivatives are zero."""
    return combine(np.floor_divide(_nominal(a), _nominal(b)), (0.0, 0.0), (a, b))


@_ieee
def cld(a, b):
    """Ceiling of the quotient; both derivatives are zero."""
    return combine(np.ceil(_nominal(a) / _nominal(b)), (0.0, 0.0), (a, b))


@_ieee
def _truncdiv(a, b):
    return combine(np.trunc(_nominal(a) / _nominal(b)), (0.0, 0.0), (a, b))


def mod(a, b):
    """a - floor(a/b)·b, sign follows b (Python ``%``)."""
    return sub(a, mul(floordiv(a, b), b))


def rem(a, b):
    """a - trunc(a/b)·b, sign follows a (``math.fmod``)."""
    return sub(a, mul(_truncdiv(a, b), b))


@_ieee
def neg(a):
    return _unary(-_nominal(a), -1.0, a)


@_ieee
def inv(a):
    res = 1.0 / _nominal(a)
    return _unary(res, -res * res, a)


@_ieee
def fma(a, b, c):
    """a·b + c."""
    va, vb, vc = _nominal(a), _nominal(b), _nominal(c)
    return combine(va * vb + vc, (vb, va, 1.0), (a, b, c))


muladd = fma


@_ieee
def pow(a, b):
    va, vb = _nominal(a), _nominal(b)
    res = np.power(va, vb)

    if not isinstance(b, Measurement):
        if float(vb).is_integer():
            der = 0.0 if vb == 0 else vb * np.power(va, vb - 1)
        else:
            der = vb * np.power(va, vb - 1.0)
        return _unary(res, der, a)

    if not isinstance(a, Measurement):
        return _unary(res, res * np.log(va), b)

    return combine(res, (vb * np.power(va, vb - 1.0), res * np.log(va)), (a, b))


@_ieee
def fsum(values):
    """Correctly rounded sum of an iterable; every term has unit sensitivity."""
    items = list(values)
    if not items:
        return 0.0
    total = math.fsum(_nominal(x) for x in items)
    return combine(total, (1.0,) * len(items), items)


@_ieee
def prod(values):
    """Product of an iterable.  ∂/∂x_i is the product of all the other terms."""
    items = list(values)
    if not items:
        return 1.0
    vals = [_nominal(x) for x in items]
    n = len(vals)

    prefix = [np.float64(1.0)] * (n + 1)
    suffix = [np.float64(1.0)] * (n + 1)
    for i in range(n):
        prefix[i + 1] = prefix[i] * vals[i]
        suffix[n - 1 - i] = suffix[n - i] * vals[n - 1 - i]
    ders = tuple(prefix[i] * suffix[i + 1] for i in range(n))
    return combine(prefix[n], ders, items)


# ═══════════════════════════════════════════════════════════════════════
# §2  SIGN, ABSOLUTE VALUE, ROUNDING
# ═══════════════════════════════════════════════════════════════════════

@_ieee
def fabs(a):
    va = _nominal(a)
    return _unary(np.abs(va), np.copysign(1.0, va), a)


@_ieee
def abs2(a):
    """Squared magnitude a²."""
    va = _nominal(a)
    return _unary(va * va, 2.0 * va, a)


@_ieee
def sign(a):
    return _unary(np.sign(_nominal(a)), 0.0, a)


@_ieee
def copysign(a, b):
    """|a| with the sign of b."""
    va, vb = _nominal(a), _nominal(b)
    return combine(np.copysign(va, vb),
                   (np.copysign(1.0, va) * np.copysign(1.0, vb), 0.0),
                   (a, b))


@_ieee
def flipsign(a, b):
    """a with its sign flipped when b is negative."""
    va, vb = _nominal(a), _nominal(b)
    flip = np.copysign(1.0, vb)
    return combine(va * flip, (flip, 0.0), (a, b))


# Rounding discards the uncertainty and returns a plain number.
def floor(a):
    return float(np.floor(_nominal(a)))


def ceil(a):
    return float(np.ceil(_nominal(a)))


def trunc(a):
    return float(np.trunc(_nominal(a)))


def rint(a):
    return float(np.rint(_nominal(a)))


# ═══════════════════════════════════════════════════════════════════════
# §3  TRIGONOMETRIC
# ═══════════════════════════════════════════════════════════════════════

@_ieee
def deg2rad(a):
    return _unary(_nominal(a) * _DEG, _DEG, a)


@_ieee
def rad2deg(a):
    return _unary(_nominal(a) / _DEG, 1.0 / _DEG, a)


@_ieee
def sin(a):
    va = _nominal(a)
    return _unary(np.sin(va), np.cos(va), a)


@_ieee
def cos(a):
    va = _nominal(a)
    return _unary(np.cos(va), -np.sin(va), a)


@_ieee
def tan(a):
    va = _nominal(a)
    return _unary(np.tan(va), 1.0 / np.cos(va) ** 2, a)


@_ieee
def sec(a):
    va = _nominal(a)
    val = 1.0 / np.cos(va)
    return _unary(val, val * np.tan(va), a)


@_ieee
def csc(a):
    va = _nominal(a)
    val = 1.0 / np.sin(va)
    return _unary(val, -val / np.tan(va), a)


@_ieee
def cot(a):
    va = _nominal(a)
    return _unary(1.0 / np.tan(va), -1.0 / np.sin(va) ** 2, a)


@_ieee
def sind(a):
    x = _nominal(a) * _DEG
    return _unary(np.sin(x), _DEG * np.cos(x), a)


@_ieee
def cosd(a):
    x = _nominal(a) * _DEG
    return _unary(np.cos(x), -_DEG * np.sin(x), a)


@_ieee
def tand(a):
    x = _nominal(a) * _DEG
    return _unary(np.tan(x), _DEG / np.cos(x) ** 2, a)


@_ieee
def secd(a):
    x = _nominal(a) * _DEG
    val = 1.0 / np.cos(x)
    return _unary(val, _DEG * val * np.tan(x), a)


@_ieee
def cscd(a):
    x = _nominal(a) * _DEG
    val = 1.0 / np.sin(x)
    return _unary(val, -_DEG * val / np.tan(x), a)


@_ieee
def cotd(a):
    x = _nominal(a) * _DEG
    return _unary(1.0 / np.tan(x), -_DEG / np.sin(x) ** 2, a)


@_ieee
def asin(a):
    va = _nominal(a)
    return _unary(np.arcsin(va), 1.0 / np.sqrt(1.0 - va * va), a)


@_ieee
def acos(a):
    va = _nominal(a)
    return _unary(np.arccos(va), -1.0 / np.sqrt(1.0 - va * va), a)


@_ieee
def atan(a):
    va = _nominal(a)
    return _unary(np.arctan(va), 1.0 / (va * va + 1.0), a)


# Inverse functions in degrees.
@_ieee
def asind(a):
    va = _nominal(a)
    return _unary(np.arcsin(va) / _DEG, 1.0 / (_DEG * np.sqrt(1.0 - va * va)), a)


@_ieee
def acosd(a):
    va = _nominal(a)
    return _unary(np.arccos(va) / _DEG, -1.0 / (_DEG * np.sqrt(1.0 - va * va)), a)


@_ieee
def atand(a):
    va = _nominal(a)
    return _unary(np.arctan(va) / _DEG, 1.0 / (_DEG * (va * va + 1.0)), a)


@_ieee
def atan2(y, x):
    vy, vx = _nominal(y), _nominal(x)
    inv_denom = 1.0 / (vy * vy + vx * vx)
    return combine(np.arctan2(vy, vx), (vx * inv_denom, -vy * inv_denom), (y, x))


@_ieee
def mod2pi(a):
    return _unary(np.mod(_nominal(a), 2.0 * np.pi), 1.0, a)


# ═══════════════════════════════════════════════════════════════════════
# §4  HYPERBOLIC
# ═══════════════════════════════════════════════════════════════════════

@_ieee
def sinh(a):
    va = _nominal(a)
    return _unary(np.sinh(va), np.cosh(va), a)


@_ieee
def cosh(a):
    va = _nominal(a)
    return _unary(np.cosh(va), np.sinh(va), a)


@_ieee
def tanh(a):
    va = _nominal(a)
    return _unary(np.tanh(va), 1.0 / np.cosh(va) ** 2, a)


@_ieee
def asinh(a):
    va = _nominal(a)
    return _unary(np.arcsinh(va), 1.0 / np.hypot(va, 1.0), a)


@_ieee
def acosh(a):
    va = _nominal(a)
    return _unary(np.arccosh(va), 1.0 / np.sqrt(va * va - 1.0), a)


@_ieee
def atanh(a):
    va = _nominal(a)
    return _unary(np.arctanh(va), 1.0 / (1.0 - va * va), a)


@_ieee
def sech(a):
    va = _nominal(a)
    val = 1.0 / np.cosh(va)
    return _unary(val, -val * np.tanh(va), a)


@_ieee
def csch(a):
    va = _nominal(a)
    val = 1.0 / np.sinh(va)
    return _unary(val, -val / np.tanh(va), a)


@_ieee
def coth(a):
    va = _nominal(a)
    return _unary(1.0 / np.tanh(va), -1.0 / np.sinh(va) ** 2, a)


# ═══════════════════════════════════════════════════════════════════════
# §5  EXPONENTIAL, LOGARITHM, ROOTS
# ═══════════════════════════════════════════════════════════════════════

@_ieee
def exp(a):
    val = np.exp(_nominal(a))
    return _unary(val, val, a)


@_ieee
def expm1(a):
    va = _nominal(a)
    return _unary(np.expm1(va), np.exp(va), a)


@_ieee
def exp2(a):
    val = np.exp2(_nominal(a))
    return _unary(val, val * np.log(2.0), a)


@_ieee
def exp10(a):
    val = np.power(10.0, _nominal(a))
    return _unary(val, val * np.log(10.0), a)


@_ieee
def log(a, base=None):
    """Natural logarithm, or logarithm to ``base`` (which may be a Measurement)."""
    va = _nominal(a)
    if base is None:
        return _unary(np.log(va), 1.0 / va, a)

    vb = _nominal(base)
    log_b = np.log(vb)
    val = np.log(va) / log_b
    return combine(val, (1.0 / (va * log_b), -val / (vb * log_b)), (a, base))


@_ieee
def log2(a):
    va = _nominal(a)
    return _unary(np.log2(va), 1.0 / (np.log(2.0) * va), a)


@_ieee
def log10(a):
    va = _nominal(a)
    return _unary(np.log10(va), 1.0 / (np.log(10.0) * va), a)


@_ieee
def log1p(a):
    va = _nominal(a)
    return _unary(np.log1p(va), 1.0 / (va + 1.0), a)


@_ieee
def frexp(a):
    """(mantissa, exponent) with a = mantissa·2**exponent; the exponent is exact."""
    mantissa, exponent = np.frexp(_nominal(a))
    return _unary(mantissa, 1.0 / np.exp2(exponent), a), int(exponent)


@_ieee
def ldexp(a, e: int):
    return _unary(np.ldexp(_nominal(a), e), np.ldexp(1.0, e), a)


@_ieee
def sqrt(a):
    val = np.sqrt(_nominal(a))
    return _unary(val, 0.5 / val, a)


@_ieee
def cbrt(a):
    va = _nominal(a)
    val = np.cbrt(va)
    return _unary(val, val / (3.0 * va), a)


@_ieee
def hypot(a, b):
    va, vb = _nominal(a), _nominal(b)
    val = np.hypot(va, vb)
    return combine(val, (va / val, vb / val), (a, b))


# ═══════════════════════════════════════════════════════════════════════
# §6  ERROR FUNCTIONS
# ═══════════════════════════════════════════════════════════════════════

@_ieee
def erf(a):
    va = _nominal(a)
    return _unary(special.erf(va), 2.0 * np.exp(-va * va) / _SQRT_PI, a)


@_ieee
def erfc(a):
    va = _nominal(a)
    return _unary(special.erfc(va), -2.0 * np.exp(-va * va) / _SQRT_PI, a)


@_ieee
def erfinv(a):
    res = special.erfinv(_nominal(a))
    return _unary(res, 0.5 * _SQRT_PI * np.exp(res * res), a)


@_ieee
def erfcinv(a):
    res = special.erfcinv(_nominal(a))
    return _unary(res, -0.5 * _SQRT_PI * np.exp(res * res), a)


@_ieee
def erfcx(a):
    va = _nominal(a)
    res = special.erfcx(va)
    return _unary(res, 2.0 * (va * res - 1.0 / _SQRT_PI), a)


@_ieee
def erfi(a):
    va = _nominal(a)
    return _unary(special.erfi(va), 2.0 * np.exp(va * va) / _SQRT_PI, a)


@_ieee
def dawson(a):
    va = _nominal(a)
    res = special.dawsn(va)
    return _unary(res, 1.0 - 2.0 * va * res, a)


# ═══════════════════════════════════════════════════════════════════════
# §7  GAMMA AND BETA FAMILY
# ═══════════════════════════════════════════════════════════════════════

@_ieee
def gamma(a):
    va = _nominal(a)
    res = special.gamma(va)
    return _unary(res, res * special.digamma(va), a)


@_ieee
def lgamma(a):
    va = _nominal(a)
    return _unary(special.gammaln(va), special.digamma(va), a)


@_ieee
def factorial(a):
    """x! = Γ(x + 1), extended to real arguments."""
    va = _nominal(a) + 1.0
    res = special.gamma(va)
    return _unary(res, res * special.digamma(va), a)


@_ieee
def digamma(a):
    va = _nominal(a)
    return _unary(special.digamma(va), special.polygamma(1, va), a)


def _invdigamma(y, max_iter=50):
    # Newton's method from Minka's starting point, positive branch
    if not np.isfinite(y):
        return np.float64(np.inf) if y == np.inf else np.float64(np.nan)
    x = np.exp(y) + 0.5 if y >= -2.22 else -1.0 / (y + np.euler_gamma)
    for _ in range(max_iter):
        step = (special.digamma(x) - y) / special.polygamma(1, x)
        x = x - step
        if abs(step) <= 4 * np.finfo(float).eps * abs(x):
            break
    return np.float64(x)


@_ieee
def invdigamma(a):
    """Inverse of the digamma function on its positive branch."""
    res = _invdigamma(_nominal(a))
    return _unary(res, 1.0 / special.polygamma(1, res), a)


@_ieee
def trigamma(a):
    va = _nominal(a)
    return _unary(special.polygamma(1, va), special.polygamma(2, va), a)


@_ieee
def polygamma(n: int, a):
    va = _nominal(a)
    n = _order(n)
    return _unary(special.polygamma(n, va), special.polygamma(n + 1, va), a)


@_ieee
def beta(a, b):
    va, vb = _nominal(a), _nominal(b)
    res = special.beta(va, vb)
    psi_ab = special.digamma(va + vb)
    return combine(res,
                   (res * (special.digamma(va) - psi_ab),
                    res * (special.digamma(vb) - psi_ab)),
                   (a, b))


@_ieee
def lbeta(a, b):
    va, vb = _nominal(a), _nominal(b)
    psi_ab = special.digamma(va + vb)
    return combine(special.betaln(va, vb),
                   (special.digamma(va) - psi_ab, special.digamma(vb) - psi_ab),
                   (a, b))


# ═══════════════════════════════════════════════════════════════════════
# §8  AIRY AND BESSEL FUNCTIONS
# ═══════════════════════════════════════════════════════════════════════

@_ieee
def airy(k: int, a):
    """
    Airy functions selected by ``k``:
        0 → Ai,  1 → Ai′,  2 → Bi,  3 → Bi′
    Ai″(x) = x·Ai(x) and Bi″(x) = x·Bi(x).
    """
    if k not in (0, 1, 2, 3):
        raise ValueError(f"Airy function index must be 0, 1, 2 or 3, got {k!r}")
    va = _nominal(a)
    ai, aip, bi, bip = special.airy(va)
    table = {
        0: (ai, aip),
        1: (aip, va * ai),
        2: (bi, bip),
        3: (bip, va * bi),
    }
    val, der = table[k]
    return _unary(val, der, a)


@_ieee
def besselj(nu, a):
    nu, x = _order(nu), _nominal(a)
    return _unary(special.jv(nu, x),
                  0.5 * (special.jv(nu - 1, x) - special.jv(nu + 1, x)), a)


@_ieee
def besselj0(a):
    x = _nominal(a)
    return _unary(special.j0(x), -special.j1(x), a)


@_ieee
def besselj1(a):
    x = _nominal(a)
    return _unary(special.j1(x), 0.5 * (special.j0(x) - special.jv(2, x)), a)


@_ieee
def bessely(nu, a):
    nu, x = _order(nu), _nominal(a)
    return _unary(special.yv(nu, x),
                  0.5 * (special.yv(nu - 1, x) - special.yv(nu + 1, x)), a)


@_ieee
def bessely0(a):
    x = _nominal(a)
    return _unary(special.y0(x), -special.y1(x), a)


@_ieee
def bessely1(a):
    x = _nominal(a)
    return _unary(special.y1(x), 0.5 * (special.y0(x) - special.yv(2, x)), a)


@_ieee
def besseli(nu, a):
    nu, x = _order(nu), _nominal(a)
    return _unary(special.iv(nu, x),
                  0.5 * (special.iv(nu - 1, x) + special.iv(nu + 1, x)), a)


@_ieee
def besselix(nu, a):
    """Exponentially scaled I_ν(x)·e^(-|x|)."""
    nu, x = _order(nu), _nominal(a)
    scale = np.exp(-np.abs(x))
    der = (0.5 * (special.iv(nu - 1, x) + special.iv(nu + 1, x)) * scale
           - special.iv(nu, x) * np.sign(x) * scale)
    return _unary(special.ive(nu, x), der, a)


@_ieee
def besselk(nu, a):
    nu, x = _order(nu), _nominal(a)
    return _unary(special.kv(nu, x),
                  -0.5 * (special.kv(nu - 1, x) + special.kv(nu + 1, x)), a)


@_ieee
def besselkx(nu, a):
    """Exponentially scaled K_ν(x)·e^x."""
    nu, x = _order(nu), _nominal(a)
    scale = np.exp(x)
    der = (-0.5 * (special.kv(nu - 1, x) + special.kv(nu + 1, x)) * scale
           + special.kv(nu, x) * scale)
    return _unary(special.kve(nu, x), der, a)


@_ieee
def besselh(nu, k: int, a):
    """
    Hankel function H^(k)_ν(x), k = 1 or 2.  Complex valued: returns a
    ComplexMeasurement for Measurement arguments, a complex otherwise.
    """
    if k not in (1, 2):
        raise ValueError(f"Hankel function kind must be 1 or 2, got {k!r}")
    nu, x = _order(nu), _nominal(a)
    hankel = special.hankel1 if k == 1 else special.hankel2
    val = hankel(nu, x)
    if not isinstance(a, Measurement):
        return complex(val)
    der = 0.5 * (hankel(nu - 1, x) - hankel(nu + 1, x))
    return propagate_complex(val, der, a)


__all__ = [
    "add", "sub", "mul", "truediv", "floordiv", "cld", "mod", "rem", "neg",
    "inv", "fma", "muladd", "pow", "fsum", "prod",
    "fabs", "abs2", "sign", "copysign", "flipsign",
    "floor", "ceil", "trunc", "rint",
    "deg2rad", "rad2deg", "sin", "cos", "tan", "sec", "csc", "cot",
    "sind", "cosd", "tand", "secd", "cscd", "cotd", "asin", "acos", "atan",
    "asind", "acosd", "atand", "atan2", "mod2pi",
    "sinh", "cosh", "tanh", "sech", "csch", "coth", "asinh", "acosh", "atanh",
    "exp", "expm1", "exp2", "exp10", "log", "log2", "log10", "log1p",
    "frexp", "ldexp", "sqrt", "cbrt", "hypot",
    "erf", "erfc", "erfinv", "erfcinv", "erfcx", "erfi", "dawson",
    "gamma", "lgamma", "factorial", "digamma", "invdigamma", "trigamma",
    "polygamma",
    "beta", "lbeta",
    "airy", "besselj", "besselj0", "besselj1", "bessely", "bessely0",
    "bessely1", "besseli", "besselix", "besselk", "besselkx", "besselh",
]
