import logging
import json
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field
from typing import Optional, List

from Expressions.engine import compute_derivative, compute_taylor, compute_value, iter_derivatives
from Expressions.errors import ExpressionError

# Random expression generator
from generate_expression import generate_random_expression

# -------------------------------------------------------------------
# Setup
# -------------------------------------------------------------------
logging.basicConfig(level=logging.DEBUG)
logger = logging.getLogger(__name__)

ALLOWED_ORIGINS = [
    "http://localhost:5173",
    "http://localhost:4000",
]

# Highest derivative order served over HTTP.
MAX_ORDER = 10

app = FastAPI()

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# -------------------------------------------------------------------
# Symbol Normalization (π → pi, × → *, − → -)
# -------------------------------------------------------------------
SYMBOL_REPLACEMENTS = {
    "π": "pi",
    "×": "*",
    "·": "*",
    "−": "-",
}


def normalize_expression(expr: str):
    if not expr:
        return expr
    for symbol, replacement in SYMBOL_REPLACEMENTS.items():
        expr = expr.replace(symbol, replacement)
    return expr

# -------------------------------------------------------------------
# Health Endpoints
# -------------------------------------------------------------------
@app.get("/ping")
async def ping():
    logger.info("Uptime ping received")
    return {"status": "ok", "message": "Backend is alive"}

@app.get("/uptime")
async def uptime():
    return {"status": "alive"}

# -------------------------------------------------------------------
# Pydantic Models
# -------------------------------------------------------------------
class ExpressionInput(BaseModel):
    expression: str
    order: int = Field(1, ge=1, le=MAX_ORDER)
    variable: str = 'x'


class EvaluationInput(BaseModel):
    expression: str
    point: float
    variable: str = 'x'


class TaylorInput(BaseModel):
    expression: str
    point: float = 0.0
    order: int = Field(3, ge=0, le=MAX_ORDER)
    variable: str = 'x'


class GenerationInput(BaseModel):
    num_terms: Optional[int] = Field(3, ge=1, le=10)
    max_depth: Optional[int] = Field(2, ge=0, le=5)
    variables: Optional[List[str]] = ['x']
    seed: Optional[int] = None

# -------------------------------------------------------------------
# Helpers
# -------------------------------------------------------------------
def require_expression(expression: str) -> str:
    expression = normalize_expression(expression)
    if not expression or not expression.strip():
        raise HTTPException(status_code=400, detail="Expression cannot be empty.")
    return expression


def sse(payload) -> str:
    return f"data: {json.dumps(payload)}\n\n"

# -------------------------------------------------------------------
# Streaming Derivative Engine
# -------------------------------------------------------------------
async def derivative_generator(expression: str, order: int, variable: str):

    try:
        for result in iter_derivatives(expression, order, variable):
            yield sse({'type': 'derivative', **result})

        yield sse({'type': 'complete', 'order': order})

    except ExpressionError as e:
        yield sse({'type': 'error', 'detail': str(e)})

    except Exception as e:
        logger.error("Unexpected differentiation error", exc_info=True)
        yield sse({'type': 'error', 'detail': f"Unexpected server error: {str(e)}"})

# -------------------------------------------------------------------
# API Endpoints
# -------------------------------------------------------------------
@app.post("/differentiate")
async def differentiate_endpoint(input_data: ExpressionInput):
    expression = require_expression(input_data.expression)
    try:
        return compute_derivative(expression, input_data.order, input_data.variable)
    except ExpressionError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.get("/solve_stream")
async def solve_derivative_stream(expression: str, order: int = 1, variable: str = 'x'):

    expression = require_expression(expression)
    if not 1 <= order <= MAX_ORDER:
        raise HTTPException(status_code=400, detail=f"Order must be between 1 and {MAX_ORDER}.")

    logger.debug(f"Solve request (normalized): {expression}")
    return StreamingResponse(
        derivative_generator(expression, order, variable),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
        }
    )


@app.post("/evaluate")
async def evaluate_endpoint(input_data: EvaluationInput):
    expression = require_expression(input_data.expression)
    try:
        return compute_value(expression, input_data.point, input_data.variable)
    except ExpressionError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.post("/taylor")
async def taylor_endpoint(input_data: TaylorInput):
    expression = require_expression(input_data.expression)
    try:
        return compute_taylor(expression, input_data.order, input_data.point, input_data.variable)
    except ExpressionError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.post("/generate")
async def generate_expression_endpoint(input_data: GenerationInput):
    try:
        _, expr_str, expr_latex = generate_random_expression(
            variables=input_data.variables,
            num_terms=input_data.num_terms,
            max_depth=input_data.max_depth,
            seed=input_data.seed,
        )

        return {
            "expression_string": expr_str,
            "expression_latex": expr_latex
        }

    except Exception as e:
        logger.error("Generation error", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Generation failed: {str(e)}"
        )
