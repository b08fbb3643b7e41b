"""Standard viscoelastic model classes, assembled once at import.

Parameter naming: ``c_a, a`` and ``c_b, b`` are springpot constants and
orders, ``k`` a spring stiffness, ``eta`` a dashpot viscosity. Moduli with
no closed form are left as ``None`` unless a Laplace-domain creep kernel is
given through ``invlaplace``.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Dict, Mapping, Tuple

from .errors import UnknownModelError
from .model_class import ModelClass, define_model_class


def _fractional_maxwell_moduli(ca: str, a: str, cb: str, b: str) -> Tuple[str, str]:
    """Storage/loss moduli of two springpots in series."""
    xa = f"({ca}*w^{a})"
    xb = f"({cb}*w^{b})"
    denominator = f"({xa}^2 + {xb}^2 + 2*{xa}*{xb}*cos(({a} - {b})*pi/2))"
    storage = f"({xb}^2*{xa}*cos({a}*pi/2) + {xa}^2*{xb}*cos({b}*pi/2))/{denominator}"
    loss = f"({xb}^2*{xa}*sin({a}*pi/2) + {xa}^2*{xb}*sin({b}*pi/2))/{denominator}"
    return storage, loss


def _maxwell_spring_moduli(ca: str, a: str, k: str) -> Tuple[str, str]:
    """Storage/loss moduli of a springpot in series with a spring."""
    xa = f"({ca}*w^{a})"
    denominator = f"({xa}^2 + {k}^2 + 2*{xa}*{k}*cos({a}*pi/2))"
    storage = f"({k}^2*{xa}*cos({a}*pi/2) + {xa}^2*{k})/{denominator}"
    loss = f"({k}^2*{xa}*sin({a}*pi/2))/{denominator}"
    return storage, loss


Spring = define_model_class(
    "Spring",
    ["k"],
    G="k",
    J="1/k",
    Gp="k",
    Gpp="0",
    constraint="k > 0",
    description="Hookean spring.",
)

Dashpot = define_model_class(
    "Dashpot",
    ["eta"],
    J="t/eta",
    Gp="0",
    Gpp="eta*w",
    constraint="eta > 0",
    description="Newtonian dashpot; relaxation modulus is a Dirac delta and is not modelled.",
)

Springpot = define_model_class(
    "Springpot",
    ["c_b", "b"],
    G="c_b*t^(-b)/gamma(1 - b)",
    J="t^b/(c_b*gamma(1 + b))",
    Gp="c_b*w^b*cos(pi*b/2)",
    Gpp="c_b*w^b*sin(pi*b/2)",
    constraint="(c_b > 0) & (b > 0) & (b < 1)",
    description="Scott-Blair springpot, a fractional element between spring (b=0) and dashpot (b=1).",
)

Maxwell = define_model_class(
    "Maxwell",
    ["eta", "k"],
    G="k*exp(-k*t/eta)",
    J="t/eta + 1/k",
    Gp="(eta^2*w^2/k)/(1 + eta^2*w^2/k^2)",
    Gpp="(eta*w)/(1 + eta^2*w^2/k^2)",
    constraint="(eta > 0) & (k > 0)",
    description="Maxwell model: spring and dashpot in series.",
)

_fm_storage, _fm_loss = _fractional_maxwell_moduli("c_a", "a", "c_b", "b")

FractionalMaxwell = define_model_class(
    "FractionalMaxwell",
    ["c_a", "a", "c_b", "b"],
    G="c_b*t^(-b)*mittleff(a - b, 1 - b, -c_b*t^(a - b)/c_a)",
    J="t^a/(c_a*gamma(1 + a)) + t^b/(c_b*gamma(1 + b))",
    Gp=_fm_storage,
    Gpp=_fm_loss,
    constraint="(c_a > 0) & (c_b > 0) & (a > b) & (a <= 1) & (b >= 0)",
    description="Fractional Maxwell model: two springpots in series.",
)

_fms_storage, _fms_loss = _maxwell_spring_moduli("c_a", "a", "k")

FractionalMaxwellSpring = define_model_class(
    "FractionalMaxwellSpring",
    ["c_a", "a", "k"],
    G="Piecewise((1/(1/c_a + 1/k), Eq(a, 0)), (k*mittleff(a, -k*t^a/c_a), True))",
    J="t^a/(c_a*gamma(1 + a)) + 1/k",
    Gp=_fms_storage,
    Gpp=_fms_loss,
    constraint="(c_a > 0) & (k > 0) & (a >= 0) & (a <= 1)",
    description="Fractional Maxwell model with the second springpot reduced to a spring.",
)

_fmd_den = "((eta*w)^2 + (c_b*w^b)^2 + 2*(eta*w)*(c_b*w^b)*cos((1 - b)*pi/2))"

FractionalMaxwellDashpot = define_model_class(
    "FractionalMaxwellDashpot",
    ["eta", "c_b", "b"],
    G="c_b*t^(-b)*mittleff(1 - b, 1 - b, -c_b*t^(1 - b)/eta)",
    J="t/eta + t^b/(c_b*gamma(1 + b))",
    Gp=f"((eta*w)^2*(c_b*w^b)*cos(b*pi/2))/{_fmd_den}",
    Gpp=f"((c_b*w^b)^2*(eta*w) + (eta*w)^2*(c_b*w^b)*sin(b*pi/2))/{_fmd_den}",
    constraint="(eta > 0) & (c_b > 0) & (b >= 0) & (b < 1)",
    description="Fractional Maxwell model with the first springpot reduced to a dashpot.",
)

KelvinVoigt = define_model_class(
    "KelvinVoigt",
    ["eta", "k"],
    G="k",
    J="(1 - exp(-k*t/eta))/k",
    Gp="k",
    Gpp="eta*w",
    constraint="(eta > 0) & (k > 0)",
    description="Kelvin-Voigt model: spring and dashpot in parallel (G omits the Dirac delta term).",
)

FractionalKelvinVoigt = define_model_class(
    "FractionalKelvinVoigt",
    ["c_a", "a", "c_b", "b"],
    G="c_a*t^(-a)/gamma(1 - a) + c_b*t^(-b)/gamma(1 - b)",
    J="(t^a/c_a)*mittleff(a - b, 1 + a, -(c_b/c_a)*t^(a - b))",
    Gp="c_a*w^a*cos(pi*a/2) + c_b*w^b*cos(pi*b/2)",
    Gpp="c_a*w^a*sin(pi*a/2) + c_b*w^b*sin(pi*b/2)",
    constraint="(c_a > 0) & (c_b > 0) & (a > b) & (a < 1) & (b >= 0)",
    description="Fractional Kelvin-Voigt model: two springpots in parallel.",
)

FractionalKVSpring = define_model_class(
    "FractionalKVSpring",
    ["c_a", "a", "k"],
    G="c_a*t^(-a)/gamma(1 - a) + k",
    J="(t^a/c_a)*mittleff(a, 1 + a, -k*t^a/c_a)",
    Gp="c_a*w^a*cos(pi*a/2) + k",
    Gpp="c_a*w^a*sin(pi*a/2)",
    constraint="(c_a > 0) & (k > 0) & (a > 0) & (a < 1)",
    description="Fractional Kelvin-Voigt model with one springpot reduced to a spring.",
)

SLS_Zener = define_model_class(
    "SLS_Zener",
    ["eta", "k_b", "k_g"],
    G="k_g + k_b*exp(-t*k_b/eta)",
    J="1/k_g - k_b/(k_g*(k_b + k_g))*exp(-t*k_b*k_g/(eta*(k_b + k_g)))",
    Gp="k_g + k_b*(w*eta/k_b)^2/(1 + (w*eta/k_b)^2)",
    Gpp="k_b*(w*eta/k_b)/(1 + (w*eta/k_b)^2)",
    constraint="(eta > 0) & (k_b > 0) & (k_g > 0)",
    description="Standard linear solid in Maxwell form: a Maxwell arm in parallel with a spring.",
)

_fz_storage, _fz_loss = _fractional_maxwell_moduli("c_a", "a", "c_b", "b")

FractionalZener = define_model_class(
    "FractionalZener",
    ["c_a", "a", "c_b", "b", "c_g", "g"],
    G="c_b*t^(-b)*mittleff(a - b, 1 - b, -(c_b/c_a)*t^(a - b)) + c_g*t^(-g)/gamma(1 - g)",
    J=(
        "invlaplace(1/(s*(c_a*c_b*s^(a + b)/(c_a*s^a + c_b*s^b) + c_g*s^g)), s, t)"
    ),
    Gp=f"{_fz_storage} + c_g*w^g*cos(pi*g/2)",
    Gpp=f"{_fz_loss} + c_g*w^g*sin(pi*g/2)",
    constraint="(c_a > 0) & (c_b > 0) & (c_g > 0) & (a > b) & (a <= 1) & (b >= 0) & (g >= 0) & (g < 1)",
    description="Fractional Zener model: fractional Maxwell arm in parallel with a springpot.",
)

FractionalSLS = define_model_class(
    "FractionalSLS",
    ["c_a", "a", "k_b", "k_g"],
    G="k_b*mittleff(a, -(k_b/c_a)*t^a) + k_g",
    J="invlaplace(1/(s*(k_g + c_a*k_b*s^a/(c_a*s^a + k_b))), s, t)",
    Gp=f"{_maxwell_spring_moduli('c_a', 'a', 'k_b')[0]} + k_g",
    Gpp=_maxwell_spring_moduli("c_a", "a", "k_b")[1],
    constraint="(c_a > 0) & (k_b > 0) & (k_g > 0) & (a > 0) & (a <= 1)",
    description="Fractional standard linear solid: springpot-spring Maxwell arm in parallel with a spring.",
)

PowerLawPlateau = define_model_class(
    "PowerLawPlateau",
    ["G_eq", "G_0", "tau", "alpha"],
    G="G_eq + (G_0 - G_eq)/(1 + t/tau)^alpha",
    constraint="(tau > 0) & (alpha >= 0)",
    description="Power-law relaxation between an instantaneous and a plateau modulus.",
)

_CLASSES: Tuple[ModelClass, ...] = (
    Spring,
    Dashpot,
    Springpot,
    Maxwell,
    FractionalMaxwell,
    FractionalMaxwellSpring,
    FractionalMaxwellDashpot,
    KelvinVoigt,
    FractionalKelvinVoigt,
    FractionalKVSpring,
    SLS_Zener,
    FractionalZener,
    FractionalSLS,
    PowerLawPlateau,
)

CATALOG: Mapping[str, ModelClass] = MappingProxyType({cls.name: cls for cls in _CLASSES})

DEFAULT_PARAMETERS: Mapping[str, Mapping[str, float]] = MappingProxyType(
    {
        "Spring": MappingProxyType({"k": 1.0}),
        "Dashpot": MappingProxyType({"eta": 1.0}),
        "Springpot": MappingProxyType({"c_b": 1.0, "b": 0.5}),
        "Maxwell": MappingProxyType({"eta": 2.0, "k": 1.0}),
        "FractionalMaxwell": MappingProxyType({"c_a": 2.0, "a": 0.5, "c_b": 1.0, "b": 0.2}),
        "FractionalMaxwellSpring": MappingProxyType({"c_a": 2.0, "a": 0.2, "k": 1.0}),
        "FractionalMaxwellDashpot": MappingProxyType({"eta": 2.0, "c_b": 1.0, "b": 0.5}),
        "KelvinVoigt": MappingProxyType({"eta": 1.0, "k": 1.0}),
        "FractionalKelvinVoigt": MappingProxyType({"c_a": 2.0, "a": 0.5, "c_b": 0.5, "b": 0.2}),
        "FractionalKVSpring": MappingProxyType({"c_a": 1.0, "a": 0.5, "k": 1.0}),
        "SLS_Zener": MappingProxyType({"eta": 1.0, "k_b": 1.0, "k_g": 1.0}),
        "FractionalZener": MappingProxyType(
            {"c_a": 1.0, "a": 0.7, "c_b": 1.0, "b": 0.5, "c_g": 1.0, "g": 0.2}
        ),
        "FractionalSLS": MappingProxyType({"c_a": 1.0, "a": 0.5, "k_b": 1.0, "k_g": 1.0}),
        "PowerLawPlateau": MappingProxyType({"G_eq": 1.0, "G_0": 2.0, "tau": 1.0, "alpha": 0.2}),
    }
)


def get_model_class(name: str) -> ModelClass:
    try:
        return CATALOG[name]
    except KeyError as exc:
        raise UnknownModelError(
            f"Unknown model '{name}'; available models: {sorted(CATALOG)}"
        ) from exc


def default_parameters(name: str) -> Dict[str, float]:
    get_model_class(name)
    return dict(DEFAULT_PARAMETERS[name])


__all__ = [
    "CATALOG",
    "DEFAULT_PARAMETERS",
    "default_parameters",
    "get_model_class",
    *[cls.name for cls in _CLASSES],
]
