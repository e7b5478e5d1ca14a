import pytest

SAMPLE_DOCUMENT = """<!DOCTYPE html>
<html lang="en">
<head>
    <title>  Weekly report  </title>
    <!-- styles -->
    <style>
        .card > .title {
            margin: 0px auto;
            padding: 0.5em 1em;
            color: rgb(51, 51, 51);
        }
        .card + .card { margin-top: calc(1em + 2px); }
    </style>
</head>
<body class="">
    <div class="card" id="">
        <h2 class="title">   Usage   </h2>
        <p>
            Requests served this week:
            <strong>12,480</strong>
        </p>
<pre>
  date        requests
</pre>
        <textarea name="notes">  keep   this  </textarea>
        <img src="chart.png" alt="" />
    </div>
    <script>
        // Counter animation
        var counters = document.querySelectorAll('.card strong')
        var template = `Total: ${counters.length} counters`
        counters.forEach(function (el) {
            el.textContent = el.textContent.replace(/,/g, '')
        })
        console.log(template)
    </script>
</body>
</html>
"""


@pytest.fixture
def sample_document() -> str:
    return SAMPLE_DOCUMENT
