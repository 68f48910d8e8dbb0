"""ouiimi - service booking marketplace API"""
