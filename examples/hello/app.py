"""Hello — a small conduit app.

Demonstrates path-scoped middleware, request state, async middleware,
error middleware, and the default 404 responder.

Run:
    python app.py
"""

import json

from conduit import App, HTTPError

app = App()


@app.use
async def parse_json(req, res, next):
    """Decode JSON request bodies into ``req.state["body"]``."""
    if req.content_type == "application/json":
        try:
            req.state["body"] = await req.json()
        except ValueError as exc:
            raise HTTPError(400, "invalid JSON body") from exc
    next()


@app.use("/")
def index(req, res, next):
    if req.pathname != "/":
        next()
        return
    res.set_header("Content-Type", "application/json")
    res.end(json.dumps({"url": req.url, "pathname": req.pathname, "query": dict(req.query)}))


@app.use("/echo")
def echo(req, res, next):
    res.set_header("Content-Type", "application/json")
    res.end(json.dumps(req.state.get("body")))


@app.use("/fail")
async def fail(req, res, next):
    raise RuntimeError("something broke")


@app.use("/fail")
def explain(err, req, res, next):
    if err is None:
        next()
        return
    res.status = 500
    res.end(f"handled: {err}")


if __name__ == "__main__":
    app.run(port=3000)
