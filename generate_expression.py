import random
from sympy import symbols, S, sin, cos, tan, cot, log, Add, Pow, Number

from Expressions.render import to_infix, to_latex
from Expressions.sympy_bridge import from_sympy

# Keeps constants readable and exact once stored as floats.
MAX_CONSTANT = 10 ** 12


def generate_random_expression(variables, num_terms=3, max_depth=2, seed=None):

    rng = random.Random(seed)

    # Ensure all variables are SymPy symbols
    variables = [symbols(v) if isinstance(v, str) else v for v in variables]

    operators = ["add", "mul", "pow"]
    # Functions the differentiator has rules for (tg, ctg and ln once converted)
    functions = [sin, cos, tan, cot, log]

    def create_leaf():
        if rng.random() < 0.7:
            return rng.choice(variables)  # variable
        else:
            return S(rng.randint(1, 10))  # constant

    # Exponents stay small positive integers so results remain readable.
    def safe_exponent():
        return S(rng.randint(1, 5))

    def create_node(current_depth):
        if current_depth >= max_depth or rng.random() < 0.4:
            return create_leaf()

        choice = rng.choice(operators + ["func"])

        # function node
        if choice == "func":
            func = rng.choice(functions)
            return func(create_node(current_depth + 1))

        # operator node
        left = create_node(current_depth + 1)
        right = create_node(current_depth + 1)

        if choice == "add":
            return left + right

        elif choice == "mul":
            return left * right

        return Pow(left, safe_exponent())

    # cot(0) and log(0) evaluate to zoo; draw again until the sum is finite
    # and nested powers have not blown a constant up.
    while True:
        terms = [create_node(0) for _ in range(num_terms)]
        expr = Add(*terms)
        if expr.has(S.ComplexInfinity, S.NaN):
            continue
        if any(abs(n) > MAX_CONSTANT for n in expr.atoms(Number)):
            continue
        break

    # Return the SymPy expression plus the engine's own text and LaTeX for it
    tree = from_sympy(expr)
    return expr, to_infix(tree), to_latex(tree)


if __name__ == '__main__':
    x, y = symbols('x y')
    expr, expr_str, expr_latex = generate_random_expression([x, y], num_terms=2, max_depth=3)
    print(f"Generated Expression: {expr}")
    print(f"Generated Expression String: {expr_str}")
    print(f"Generated Expression LaTeX: {expr_latex}")
