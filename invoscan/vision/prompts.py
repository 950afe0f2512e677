"""Instructions sent to the vision model alongside the invoice image."""

PRODUCTS_INSTRUCTION = """\
Analyze the following invoice or delivery note image and extract ALL distinct product lines.

Return ONLY a JSON object (no other text) of this form:
{
  "supplier_name": "string, if printed on the document",
  "invoice_number": "string, if printed on the document",
  "total_amount": number,
  "products": [
    {
      "name": "product name as printed",
      "catalog_number": "supplier catalog number / SKU",
      "barcode": "EAN/UPC barcode, only if printed",
      "quantity": number,
      "purchase_price": number,
      "sale_price": number,
      "total": number,
      "description": "only if a separate description is clearly present",
      "short_name": "short display name, only if obvious"
    }
  ]
}

Rules:
- "quantity" is the number of individual units; "total" is the line total.
- For numeric keys extract ONLY the numerical value (integers or decimals).
  Do NOT include currency symbols, thousands separators or any other text.
- "purchase_price" is the unit purchase price; include it only if it is printed.
- If an optional piece of information is not found, omit that key.
- If no products are found, return {"products": []}.
"""

HEADER_INSTRUCTION = """\
Analyze the following invoice image and extract the invoice-level details.

Return ONLY a JSON object (no other text) with these keys, when present:
  "supplier_name": (string) the name of the supplier or vendor.
  "invoice_number": (string) the unique invoice identifier.
  "total_amount": (number) the final total amount due, usually including VAT.
      Extract ONLY the numerical value, no currency symbols.
      Look for keywords like 'Total', 'Grand Total', 'Amount due'.
  "invoice_date": (string) the date written on the invoice, preferably as
      YYYY-MM-DD; otherwise exactly as printed (e.g. DD/MM/YYYY).
  "payment_method": (string) the method of payment, if any
      (e.g. 'Cash', 'Credit Card', 'Bank Transfer', 'Check').

If a piece of information is not found, omit the key.
NEVER return an empty response for an invoice: always return a JSON object.
"""
