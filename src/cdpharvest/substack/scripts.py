"""JavaScript expressions evaluated inside the Substack dashboard."""

# Returns {records: [{identityKey, attributes}]} for the rows currently rendered.
SUBSCRIBERS_SCRIPT = """
(() => {
    const records = [];
    document.querySelectorAll('table tbody tr').forEach(row => {
        const cells = row.querySelectorAll('td');
        if (cells.length < 4) return;
        const email = cells[1]?.innerText?.trim() || '';
        const tier = cells[2]?.innerText?.trim()?.toLowerCase() || '';
        const date = cells[4]?.innerText?.trim() || '';
        const amount = cells[5]?.innerText?.trim() || '$0.00';
        if (!email || !email.includes('@')) return;
        records.push({
            identityKey: email,
            attributes: {
                email,
                tier: tier.includes('found') ? 'founding' : tier.includes('paid') ? 'paid' : 'free',
                subscribe_date: date,
                amount_spent: amount
            }
        });
    });
    return {records};
})()
"""

# Scrolls the list container and the window, clicks "load more" if present.
REVEAL_SCRIPT = """
(() => {
    const table = document.querySelector('table');
    const scrollContainer = table?.closest('[style*="overflow"]') ||
                            document.querySelector('[class*="subscriber"]')?.parentElement ||
                            document.documentElement;
    if (scrollContainer) {
        scrollContainer.scrollTop = scrollContainer.scrollHeight;
    }
    window.scrollTo(0, document.body.scrollHeight);
    const button = [...document.querySelectorAll('button')]
        .find(b => b.innerText.toLowerCase().includes('load more') ||
                   b.innerText.toLowerCase().includes('show more'));
    if (button) button.click();
    return {ok: true};
})()
"""

STATS_SCRIPT = r"""
(() => {
    const metrics = {};
    const text = document.body.innerText;
    const count = m => parseInt(m[1].replace(/,/g, ''));

    const totalMatch = text.match(/(\d[\d,]*)\s*(?:total\s*)?subscribers?/i);
    if (totalMatch) metrics.totalSubscribers = count(totalMatch);

    const paidMatch = text.match(/(\d[\d,]*)\s*paid/i);
    if (paidMatch) metrics.paidSubscribers = count(paidMatch);

    const freeMatch = text.match(/(\d[\d,]*)\s*free/i);
    if (freeMatch) metrics.freeSubscribers = count(freeMatch);

    const openMatch = text.match(/(\d+(?:\.\d+)?)[%]\s*(?:open|opened)/i);
    if (openMatch) metrics.openRate = parseFloat(openMatch[1]);

    const clickMatch = text.match(/(\d+(?:\.\d+)?)[%]\s*(?:click|clicked)/i);
    if (clickMatch) metrics.clickRate = parseFloat(clickMatch[1]);

    return metrics;
})()
"""
