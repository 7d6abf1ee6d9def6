from webcrawl.crawler.parser import ContentParser


BASE = "https://example.com/section/page.html"


def test_resolves_relative_links_against_base():
    html = '''
    <html><body>
      <a href="/about">About</a>
      <a href="next.html">Next</a>
      <a href="../up.html">Up</a>
      <a href="https://other.test/x">Other</a>
    </body></html>
    '''
    parsed = ContentParser().extract(html, BASE)
    assert parsed.links == [
        "https://example.com/about",
        "https://example.com/section/next.html",
        "https://example.com/up.html",
        "https://other.test/x",
    ]


def test_strips_fragments_and_deduplicates():
    html = '<a href="/a#top">1</a><a href="/a#bottom">2</a><a href="#local">3</a>'
    parsed = ContentParser().extract(html, BASE)
    assert parsed.links == ["https://example.com/a"]


def test_drops_malformed_and_non_navigational_links():
    html = '''
    <a href="http://[broken">bad</a>
    <a href="http://example.com:notaport/">bad port</a>
    <a href="javascript:alert(1)">js</a>
    <a href="mailto:a@example.com">mail</a>
    <a href="">empty</a>
    <a href="/ok">ok</a>
    '''
    parsed = ContentParser().extract(html, BASE)
    assert parsed.links == ["https://example.com/ok"]


def test_extracts_text_and_metadata():
    html = '''
    <html lang="en"><head>
      <title> Hello   World </title>
      <meta name="description" content="A page">
      <link rel="canonical" href="/canonical">
      <style>body { color: red }</style>
    </head><body><script>var x = 1;</script><p>Some   visible text</p></body></html>
    '''
    parsed = ContentParser().extract(html, BASE)
    assert parsed.title == "Hello World"
    assert parsed.meta_description == "A page"
    assert parsed.language == "en"
    assert parsed.canonical_url == "https://example.com/canonical"
    assert parsed.text == "Some visible text"
    assert parsed.word_count == 3
