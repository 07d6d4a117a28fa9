from __future__ import annotations

from jinja2 import Template

from .shell import OptimizerShell
from .usage import FREE_LIMIT, PACK_SIZE

PAGE_TEMPLATE = Template(
    """<!doctype html>
<html lang="en">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>Job Description Optimizer</title>
</head>
<body>
<header>
  <h1>Job Description Optimizer</h1>
  <p>Transform boring job posts into compelling opportunities that attract top talent</p>
  <p class="badge" id="remaining">
    {% if remaining is none %}Unlimited optimizations{% else %}Uses remaining: <strong>{{ remaining }}</strong>{% endif %}
  </p>
</header>

<main>
  <section id="input">
    <h2>Original Job Description</h2>
    <form method="post" action="/optimize">
      <textarea name="job_description" rows="20" cols="80"
        placeholder="Paste your boring, requirement-heavy job description here...">{{ state.input_text }}</textarea>
      <button type="submit"{% if state.loading %} disabled{% endif %}>
        {% if state.loading %}Optimizing...{% else %}Optimize Job Description{% endif %}
      </button>
    </form>
  </section>

  <section id="output">
    <h2>Optimized Version</h2>
    {% if state.error %}<div class="error" role="alert">{{ state.error }}</div>{% endif %}
    {% if state.output_text %}
    <pre class="optimized">{{ state.output_text }}</pre>
    {% else %}
    <p class="placeholder">Your optimized job description will appear here</p>
    {% endif %}
  </section>

  {% if show_upsell %}
  <section id="upsell">
    <h3>Out of free optimizations</h3>
    <p>You've used your {{ free_limit }} free optimizations.</p>
    <ul>
      <li>$19 for {{ pack_size }} optimizations</li>
      <li>$49/month unlimited</li>
    </ul>
  </section>
  {% endif %}

  <section id="activate">
    <h3>Have an activation code?</h3>
    <form method="post" action="/activate">
      <input type="text" name="code" autocomplete="off">
      <button type="submit">Activate</button>
    </form>
    {% if state.usage.activation_code %}<p class="active-code">Active code: {{ state.usage.activation_code }}</p>{% endif %}
  </section>
</main>

<footer><p>Powered by Groq + Llama 3.3 70B</p></footer>
</body>
</html>
""",
    autoescape=True,
)


def render_page(shell: OptimizerShell) -> str:
    state = shell.state
    return PAGE_TEMPLATE.render(
        state=state,
        remaining=shell.remaining,
        show_upsell=state.show_upsell or shell.quota_exhausted,
        free_limit=FREE_LIMIT,
        pack_size=PACK_SIZE,
    )
